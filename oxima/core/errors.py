"""Exception types raised by the property store and the identity adapter."""

from typing import Optional


class ConfigError(Exception):
    """Base class for property store errors."""


class ConfigLoadError(ConfigError):
    """The properties document could not be fetched or parsed.

    The store stays in its previous state, so calling ``load`` again retries.
    """

    def __init__(self, source: str, reason: Optional[str] = None):
        self.source = source
        self.reason = reason
        message = f"Failed to load properties file from {source}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigNotLoadedError(ConfigError):
    def __init__(self):
        super().__init__("Properties not loaded. Initialize the store first")


class ConfigKeyNotFoundError(ConfigError, LookupError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Property '{key}' not found in configuration")


class InvalidKeyPathError(ConfigError, ValueError):
    def __init__(self, key: object):
        self.key = key
        super().__init__(f"Invalid property key path: {key!r}")


class ConfigValueTypeError(ConfigError, TypeError):
    def __init__(self, key: str, expected_type: type, actual: object):
        self.key = key
        self.expected_type = expected_type
        super().__init__(
            f"Property '{key}' expected {expected_type.__name__}, got {type(actual).__name__}"
        )


class AuthProviderError(Exception):
    """An identity provider account action failed."""
