"""Configuration errors."""


class ConfigError(Exception):
    """Raised when a config file, environment override or CLI value is invalid."""
