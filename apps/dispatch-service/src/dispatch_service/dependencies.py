from __future__ import annotations

from fastapi import Request

from dispatch_service.service import EmergencyService
from dispatch_service.store import DispatchStore


def get_store(request: Request) -> DispatchStore:
    return request.app.state.store


def get_emergency_service(request: Request) -> EmergencyService:
    return request.app.state.emergency_service
