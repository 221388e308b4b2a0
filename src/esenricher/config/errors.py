"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised before any store call when the job cannot be set up as requested."""


class MissingConfigurationError(ConfigurationError):
    """Raised when a required value (index, id field/value, credential) is absent or blank."""


class InvalidSettingError(ConfigurationError):
    """Raised when a tuning knob or connection value is out of range."""


class InvalidPayloadError(ConfigurationError):
    """Raised when the enrichment payload is not a well-formed JSON object."""
