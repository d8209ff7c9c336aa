"""Feature availability checks derived from the settings snapshot."""

from __future__ import annotations

from .config import AppSettings


def is_present(value: str | None) -> bool:
    """Return ``True`` for a usable credential value."""
    return bool(value) and value != "undefined"


def messaging_enabled(settings: AppSettings) -> bool:
    """Messaging needs the instance id, instance token and client token."""
    zapi = settings.zapi
    return (
        is_present(zapi.instance_id)
        and is_present(zapi.instance_token)
        and is_present(zapi.client_token)
    )


def ai_enabled(settings: AppSettings) -> bool:
    return is_present(settings.openai.api_key)


def todoist_enabled(settings: AppSettings) -> bool:
    return is_present(settings.todoist.api_token)


def portfolio_enabled(settings: AppSettings) -> bool:
    """Portfolio reports need an API token and a numeric destination number."""
    number = settings.portfolio.whatsapp_number
    return (
        is_present(settings.portfolio.brapi_token)
        and number is not None
        and number.isdigit()
    )


def storage_enabled(settings: AppSettings) -> bool:
    return bool(settings.storage.namespace)


FEATURE_CHECKS = {
    "messaging": messaging_enabled,
    "ai": ai_enabled,
    "todoist": todoist_enabled,
    "portfolio": portfolio_enabled,
    "storage": storage_enabled,
}


def enabled_features(settings: AppSettings) -> list[str]:
    """Return the names of features whose requirements are satisfied."""
    return [name for name, check in FEATURE_CHECKS.items() if check(settings)]


__all__ = [
    "FEATURE_CHECKS",
    "ai_enabled",
    "enabled_features",
    "is_present",
    "messaging_enabled",
    "portfolio_enabled",
    "storage_enabled",
    "todoist_enabled",
]
