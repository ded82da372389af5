"""Custom exceptions for readiness gate."""


class ReadinessGateError(Exception):
    """Base exception for all readiness gate errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ResolutionError(ReadinessGateError):
    """Exception raised when pod readiness cannot be determined."""

    pass


class PersistenceError(ReadinessGateError):
    """Exception raised when an updated node cannot be written."""

    pass


class KubernetesError(ReadinessGateError):
    """Exception raised for Kubernetes API errors."""

    pass


class ConfigurationError(ReadinessGateError):
    """Exception raised for configuration errors."""

    pass
