"""Service layer helpers (settings persistence)."""

from .settings import DEFAULT_BASE_URL, DEFAULT_MODEL, SecretVault, Settings, SettingsStore, redact_secret

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "SecretVault",
    "Settings",
    "SettingsStore",
    "redact_secret",
]
