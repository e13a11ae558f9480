from devkit.config import load_settings


def test_load_settings_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://example")
    monkeypatch.setenv("PUSH_WEBHOOK_URL", "https://push.example.com/notify")
    monkeypatch.setenv("PROVIDER_LOCATION_MAX_AGE_SECONDS", "600")
    settings = load_settings("dispatch-service")

    assert settings.SERVICE_NAME == "dispatch-service"
    assert settings.DATABASE_URL == "postgresql://example"
    assert settings.PUSH_WEBHOOK_URL == "https://push.example.com/notify"
    assert settings.PROVIDER_LOCATION_MAX_AGE_SECONDS == 600


def test_load_settings_defaults(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("PROVIDER_LOCATION_MAX_AGE_SECONDS", raising=False)
    settings = load_settings("dispatch-service")

    assert settings.DATABASE_URL is None
    assert settings.PROVIDER_LOCATION_MAX_AGE_SECONDS is None
    assert settings.JWT_SECRET_KEY == "dev-only-secret"
