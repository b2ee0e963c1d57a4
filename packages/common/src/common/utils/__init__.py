from common.utils.config_errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    MissingEnvironmentVariableError,
)
from common.utils.config_loader import ConfigLoader
from common.utils.settings_base import BaseSettings

__all__ = [
    "BaseSettings",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    "MissingEnvironmentVariableError",
    "ConfigLoader",
]
