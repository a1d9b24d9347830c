"""Configuration management for the agent digest mailer."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, validate_config_file
from .models import (
    AppConfig,
    DispatchConfig,
    DomainConfig,
    EmailConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    RunConfig,
    ScheduleConfig,
    SearchConfig,
)

__all__ = [
    # Main loader functions
    "load_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "DomainConfig",
    "SearchConfig",
    "EmailConfig",
    "DispatchConfig",
    "ScheduleConfig",
    "LoggingConfig",
    "RunConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
