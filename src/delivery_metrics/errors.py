"""Custom exception types for the GitHub delivery metrics engine."""


class MetricsError(Exception):
    """Base exception for all recoverable metrics errors."""


class ConfigurationError(MetricsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(MetricsError):
    """Raised when GitHub authentication credentials are unavailable or invalid."""


class ApiError(MetricsError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class NoDeploymentsFound(MetricsError):
    """Raised when a repository has neither releases nor tags to use as deployments."""


class UnresolvedDeploymentError(MetricsError):
    """Raised when a deployment is missing the commit SHA or timestamp it needs."""
