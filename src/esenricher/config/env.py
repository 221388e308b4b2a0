"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import MissingConfigurationError


def env_value(name: str) -> str | None:
    """Return the stripped value of ``name``, treating blank values as unset."""

    value = (os.getenv(name) or "").strip()
    return value or None


def read_env_credentials(username_var: str, password_var: str) -> tuple[str, str] | None:
    """Return ``(username, password)`` for HTTP basic auth, or ``None`` when neither is set.

    Setting only one of the pair raises ``MissingConfigurationError`` naming the other,
    so a typo never silently falls back to anonymous access.
    """

    username = env_value(username_var)
    password = env_value(password_var)
    if username is None and password is None:
        return None
    if username is None or password is None:
        missing = username_var if username is None else password_var
        raise MissingConfigurationError(f"Missing configuration for: {missing}")
    return username, password
