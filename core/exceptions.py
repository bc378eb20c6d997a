class AutomationError(Exception):
    """Base class for errors raised by the automation engine."""


class ConfigurationError(AutomationError):
    """Raised when an automation graph or trigger cannot be interpreted."""


class UnknownRegistryTypeError(ConfigurationError):
    """Raised when an automation references an unknown trigger or node type."""


class DeliveryError(AutomationError):
    """Raised when an EMAIL node cannot render, resolve or deliver its message."""


class SchedulingParamError(AutomationError, ValueError):
    """Raised when DELAY node parameters cannot be turned into a resume time."""

