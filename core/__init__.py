from .config import LoggingConfig, Settings, get_settings
from .exceptions import (
    AutomationError,
    ConfigurationError,
    DeliveryError,
    SchedulingParamError,
    UnknownRegistryTypeError,
)
from .logger import get_logger, setup_logging

__all__ = [
    "AutomationError",
    "ConfigurationError",
    "DeliveryError",
    "LoggingConfig",
    "SchedulingParamError",
    "Settings",
    "UnknownRegistryTypeError",
    "get_logger",
    "get_settings",
    "setup_logging",
]
