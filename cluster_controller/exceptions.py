"""Custom exceptions for the cluster controller."""


class ClusterControllerError(Exception):
    """Base exception for all cluster controller errors."""

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


class ConfigurationError(ClusterControllerError):
    """Exception raised when a cluster ConfigMap is missing or has invalid keys."""

    def __init__(self, message: str, details: str = None, field: str | None = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
            field: ConfigMap key that failed validation, if known
        """
        self.field = field
        super().__init__(message, details)


class ReconstructionError(ClusterControllerError):
    """Exception raised when a live resource does not have the expected shape."""

    def __init__(self, message: str, details: str = None, resource: str | None = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
            resource: Name of the offending resource, if known
        """
        self.resource = resource
        super().__init__(message, details)


class KubernetesError(ClusterControllerError):
    """Exception raised for Kubernetes API errors."""

    pass
