from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from devkit.db import AsyncDatabaseManager, Base
from devkit.timezone import now_platform, now_platform_iso, parse_iso
from sqlalchemy import JSON, Boolean, DateTime, Float, String, Text, UniqueConstraint, func, select, update
from sqlalchemy.orm import Mapped, mapped_column

from dispatch_service.models import (
    EmergencyRequest,
    EmergencyResponse,
    Notification,
    ProviderProfile,
    ResponseStatus,
)

_DISPATCH_SCHEMA = "dispatch"


class ProviderORM(Base):
    __tablename__ = "providers"
    __table_args__ = {"schema": _DISPATCH_SCHEMA}

    provider_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="provider", index=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    service_radius_km: Mapped[float | None] = mapped_column(Float, nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    plan_features: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class EmergencyRequestORM(Base):
    __tablename__ = "emergency_requests"
    __table_args__ = {"schema": _DISPATCH_SCHEMA}

    request_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    client_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    service_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    provider_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class EmergencyResponseORM(Base):
    __tablename__ = "emergency_responses"
    __table_args__ = (
        UniqueConstraint("emergency_id", "provider_id", name="uq_emergency_response_provider"),
        {"schema": _DISPATCH_SCHEMA},
    )

    response_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    emergency_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    price_per_hour: Mapped[float] = mapped_column(Float, nullable=False)
    min_hours: Mapped[float] = mapped_column(Float, nullable=False)
    eta: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class NotificationORM(Base):
    __tablename__ = "notifications"
    __table_args__ = {"schema": _DISPATCH_SCHEMA}

    notification_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DispatchStore:
    def __init__(self, database_url: str | None = None, *, db: AsyncDatabaseManager | None = None) -> None:
        self._providers: dict[str, ProviderProfile] = {}
        self._emergencies: dict[str, EmergencyRequest] = {}
        self._responses: dict[str, EmergencyResponse] = {}
        self._notifications: dict[str, Notification] = {}
        if db is None and database_url:
            db = AsyncDatabaseManager(database_url)
        self._db = db
        self._orm_ready = False

    async def ensure_ready(self) -> None:
        await self._ensure_orm_ready()

    async def close(self) -> None:
        if self._db is not None:
            await self._db.disconnect()

    # providers

    async def upsert_provider(self, profile: ProviderProfile) -> ProviderProfile:
        profile.updated_at = now_platform_iso()
        if self._db is None:
            self._providers[profile.provider_id] = profile
            return profile

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(ProviderORM, profile.provider_id)
            if row is None:
                row = ProviderORM(provider_id=profile.provider_id)
                session.add(row)
            row.email = profile.email
            row.full_name = profile.full_name
            row.role = profile.role
            row.is_online = profile.is_online
            row.latitude = profile.latitude
            row.longitude = profile.longitude
            row.service_radius_km = profile.service_radius_km
            row.skills = list(profile.skills)
            row.plan_features = dict(profile.plan_features)
            row.updated_at = self._parse_dt(profile.updated_at) or now_platform()
            return self._to_provider(row)

        return await self._db.run_with_session(_run)

    async def get_provider(self, provider_id: str) -> ProviderProfile | None:
        if self._db is None:
            return self._providers.get(provider_id)

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(ProviderORM, provider_id)
            return None if row is None else self._to_provider(row)

        return await self._db.run_with_session(_run)

    async def upsert_location(self, provider_id: str, latitude: float, longitude: float) -> ProviderProfile:
        if self._db is None:
            profile = self._providers.get(provider_id)
            if profile is None:
                profile = ProviderProfile(provider_id=provider_id)
                self._providers[provider_id] = profile
            profile.latitude = latitude
            profile.longitude = longitude
            profile.updated_at = now_platform_iso()
            return profile

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(ProviderORM, provider_id)
            if row is None:
                row = ProviderORM(
                    provider_id=provider_id,
                    email="",
                    role="provider",
                    is_online=False,
                    skills=[],
                    plan_features={},
                )
                session.add(row)
            row.latitude = latitude
            row.longitude = longitude
            row.updated_at = now_platform()
            return self._to_provider(row)

        return await self._db.run_with_session(_run)

    async def set_online(
        self,
        provider_id: str,
        is_online: bool,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> ProviderProfile | None:
        has_location = latitude is not None and longitude is not None
        if self._db is None:
            profile = self._providers.get(provider_id)
            if profile is None:
                return None
            profile.is_online = is_online
            if has_location:
                profile.latitude = latitude
                profile.longitude = longitude
            profile.updated_at = now_platform_iso()
            return profile

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(ProviderORM, provider_id)
            if row is None:
                return None
            row.is_online = is_online
            if has_location:
                row.latitude = latitude
                row.longitude = longitude
            row.updated_at = now_platform()
            return self._to_provider(row)

        return await self._db.run_with_session(_run)

    async def list_online_providers(self) -> list[ProviderProfile]:
        if self._db is None:
            return [
                profile
                for profile in self._providers.values()
                if profile.role == "provider"
                and profile.is_online
                and profile.latitude is not None
                and profile.longitude is not None
            ]

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = select(ProviderORM).where(
                ProviderORM.role == "provider",
                ProviderORM.is_online.is_(True),
                ProviderORM.latitude.is_not(None),
                ProviderORM.longitude.is_not(None),
            )
            return [self._to_provider(row) for row in (await session.scalars(stmt)).all()]

        return await self._db.run_with_session(_run)

    # emergencies

    async def create_emergency(self, request: EmergencyRequest) -> EmergencyRequest:
        if self._db is None:
            self._emergencies[request.request_id] = request
            return request

        await self._ensure_orm_ready()

        async def _run(session):
            row = EmergencyRequestORM(
                request_id=request.request_id,
                client_id=request.client_id,
                category=request.category,
                service_id=request.service_id,
                description=request.description,
                latitude=request.latitude,
                longitude=request.longitude,
                address=request.address,
                status=request.status,
                provider_id=request.provider_id,
                accepted_at=self._parse_dt(request.accepted_at),
                created_at=self._parse_dt(request.created_at) or now_platform(),
            )
            session.add(row)
            return self._to_emergency(row)

        return await self._db.run_with_session(_run)

    async def get_emergency(self, request_id: str) -> EmergencyRequest | None:
        if self._db is None:
            return self._emergencies.get(request_id)

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(EmergencyRequestORM, request_id)
            return None if row is None else self._to_emergency(row)

        return await self._db.run_with_session(_run)

    async def update_emergency(self, request_id: str, updates: dict[str, Any]) -> EmergencyRequest | None:
        if self._db is None:
            current = self._emergencies.get(request_id)
            if current is None:
                return None
            updated = replace(current, **updates)
            self._emergencies[request_id] = updated
            return updated

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(EmergencyRequestORM, request_id)
            if row is None:
                return None
            for key in ("status", "provider_id", "description", "address"):
                if key in updates:
                    setattr(row, key, updates[key])
            if "accepted_at" in updates:
                row.accepted_at = self._parse_dt(updates["accepted_at"])
            return self._to_emergency(row)

        return await self._db.run_with_session(_run)

    async def list_emergencies(self, status: str | None = None, limit: int = 100) -> list[EmergencyRequest]:
        """Newest first."""
        if self._db is None:
            items = [item for item in self._emergencies.values() if status is None or item.status == status]
            items.sort(key=lambda item: item.created_at, reverse=True)
            return items[:limit]

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = select(EmergencyRequestORM)
            if status is not None:
                stmt = stmt.where(EmergencyRequestORM.status == status)
            stmt = stmt.order_by(EmergencyRequestORM.created_at.desc()).limit(limit)
            return [self._to_emergency(row) for row in (await session.scalars(stmt)).all()]

        return await self._db.run_with_session(_run)

    # provider responses

    async def add_response(self, response: EmergencyResponse) -> EmergencyResponse | None:
        if self._db is None:
            if any(
                item.emergency_id == response.emergency_id and item.provider_id == response.provider_id
                for item in self._responses.values()
            ):
                return None
            self._responses[response.response_id] = response
            return response

        await self._ensure_orm_ready()

        async def _run(session):
            existing = await session.scalar(
                select(EmergencyResponseORM).where(
                    EmergencyResponseORM.emergency_id == response.emergency_id,
                    EmergencyResponseORM.provider_id == response.provider_id,
                )
            )
            if existing is not None:
                return None
            row = EmergencyResponseORM(
                response_id=response.response_id,
                emergency_id=response.emergency_id,
                provider_id=response.provider_id,
                price_per_hour=response.price_per_hour,
                min_hours=response.min_hours,
                eta=response.eta,
                status=response.status,
                created_at=self._parse_dt(response.created_at) or now_platform(),
            )
            session.add(row)
            return self._to_response(row)

        return await self._db.run_with_session(_run)

    async def list_responses(self, emergency_id: str) -> list[EmergencyResponse]:
        if self._db is None:
            items = [item for item in self._responses.values() if item.emergency_id == emergency_id]
            return sorted(items, key=lambda item: item.created_at)

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = (
                select(EmergencyResponseORM)
                .where(EmergencyResponseORM.emergency_id == emergency_id)
                .order_by(EmergencyResponseORM.created_at)
            )
            return [self._to_response(row) for row in (await session.scalars(stmt)).all()]

        return await self._db.run_with_session(_run)

    async def list_provider_responses(self, provider_id: str) -> list[EmergencyResponse]:
        if self._db is None:
            items = [item for item in self._responses.values() if item.provider_id == provider_id]
            return sorted(items, key=lambda item: item.created_at)

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = (
                select(EmergencyResponseORM)
                .where(EmergencyResponseORM.provider_id == provider_id)
                .order_by(EmergencyResponseORM.created_at)
            )
            return [self._to_response(row) for row in (await session.scalars(stmt)).all()]

        return await self._db.run_with_session(_run)

    async def set_response_statuses(self, emergency_id: str, accepted_provider_id: str) -> list[EmergencyResponse]:
        if self._db is None:
            for response_id, item in list(self._responses.items()):
                if item.emergency_id != emergency_id:
                    continue
                status = (
                    ResponseStatus.ACCEPTED if item.provider_id == accepted_provider_id else ResponseStatus.REJECTED
                )
                self._responses[response_id] = replace(item, status=status.value)
            return await self.list_responses(emergency_id)

        await self._ensure_orm_ready()

        async def _run(session):
            await session.execute(
                update(EmergencyResponseORM)
                .where(
                    EmergencyResponseORM.emergency_id == emergency_id,
                    EmergencyResponseORM.provider_id == accepted_provider_id,
                )
                .values(status=ResponseStatus.ACCEPTED.value)
            )
            await session.execute(
                update(EmergencyResponseORM)
                .where(
                    EmergencyResponseORM.emergency_id == emergency_id,
                    EmergencyResponseORM.provider_id != accepted_provider_id,
                )
                .values(status=ResponseStatus.REJECTED.value)
            )

        await self._db.run_with_session(_run)
        return await self.list_responses(emergency_id)

    # notifications

    async def add_notifications(self, notifications: list[Notification]) -> list[Notification]:
        if self._db is None:
            for item in notifications:
                self._notifications[item.notification_id] = item
            return notifications

        await self._ensure_orm_ready()

        async def _run(session):
            session.add_all(
                [
                    NotificationORM(
                        notification_id=item.notification_id,
                        user_id=item.user_id,
                        user_type=item.user_type,
                        title=item.title,
                        message=item.message,
                        type=item.type,
                        data=dict(item.data),
                        read=item.read,
                        created_at=self._parse_dt(item.created_at) or now_platform(),
                    )
                    for item in notifications
                ]
            )
            return notifications

        return await self._db.run_with_session(_run)

    async def list_notifications(
        self,
        user_id: str,
        limit: int = 20,
        user_type: str | None = None,
    ) -> list[Notification]:
        if self._db is None:
            items = [
                item
                for item in self._notifications.values()
                if item.user_id == user_id and (user_type is None or item.user_type == user_type)
            ]
            items.sort(key=lambda item: item.created_at, reverse=True)
            return items[:limit]

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = select(NotificationORM).where(NotificationORM.user_id == user_id)
            if user_type is not None:
                stmt = stmt.where(NotificationORM.user_type == user_type)
            stmt = stmt.order_by(NotificationORM.created_at.desc()).limit(limit)
            return [self._to_notification(row) for row in (await session.scalars(stmt)).all()]

        return await self._db.run_with_session(_run)

    async def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        if self._db is None:
            item = self._notifications.get(notification_id)
            if item is None or item.user_id != user_id:
                return False
            item.read = True
            return True

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(NotificationORM, notification_id)
            if row is None or row.user_id != user_id:
                return False
            row.read = True
            return True

        return await self._db.run_with_session(_run)

    async def unread_count(self, user_id: str) -> int:
        if self._db is None:
            return sum(1 for item in self._notifications.values() if item.user_id == user_id and not item.read)

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = select(func.count()).select_from(NotificationORM).where(
                NotificationORM.user_id == user_id,
                NotificationORM.read.is_(False),
            )
            return int(await session.scalar(stmt) or 0)

        return await self._db.run_with_session(_run)

    async def _ensure_orm_ready(self) -> None:
        if self._db is None or self._orm_ready:
            return
        await self._db.connect()
        await self._db.prepare_schema(_DISPATCH_SCHEMA, Base.metadata)
        self._orm_ready = True

    def _to_provider(self, row: ProviderORM) -> ProviderProfile:
        return ProviderProfile(
            provider_id=row.provider_id,
            email=row.email or "",
            full_name=row.full_name,
            role=row.role,
            is_online=bool(row.is_online),
            latitude=row.latitude,
            longitude=row.longitude,
            service_radius_km=row.service_radius_km,
            skills=list(row.skills or []),
            plan_features=dict(row.plan_features or {}),
            updated_at=row.updated_at.isoformat() if row.updated_at else now_platform_iso(),
        )

    def _to_emergency(self, row: EmergencyRequestORM) -> EmergencyRequest:
        return EmergencyRequest(
            request_id=row.request_id,
            client_id=row.client_id,
            category=row.category,
            latitude=row.latitude,
            longitude=row.longitude,
            service_id=row.service_id,
            description=row.description,
            address=row.address,
            status=row.status,
            provider_id=row.provider_id,
            accepted_at=row.accepted_at.isoformat() if row.accepted_at else None,
            created_at=row.created_at.isoformat() if row.created_at else now_platform_iso(),
        )

    def _to_response(self, row: EmergencyResponseORM) -> EmergencyResponse:
        return EmergencyResponse(
            response_id=row.response_id,
            emergency_id=row.emergency_id,
            provider_id=row.provider_id,
            price_per_hour=row.price_per_hour,
            min_hours=row.min_hours,
            eta=row.eta,
            status=row.status,
            created_at=row.created_at.isoformat() if row.created_at else now_platform_iso(),
        )

    def _to_notification(self, row: NotificationORM) -> Notification:
        return Notification(
            notification_id=row.notification_id,
            user_id=row.user_id,
            user_type=row.user_type,
            title=row.title,
            message=row.message,
            type=row.type,
            data=dict(row.data or {}),
            read=bool(row.read),
            created_at=row.created_at.isoformat() if row.created_at else now_platform_iso(),
        )

    def _parse_dt(self, value: str | None) -> datetime | None:
        return parse_iso(value)
