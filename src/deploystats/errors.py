"""Custom exception types for the GitHub deployment statistics tool."""


class DeploymentStatsError(Exception):
    """Base exception for all recoverable deployment statistics errors."""


class ConfigurationError(DeploymentStatsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(DeploymentStatsError):
    """Raised when no GitHub token can be obtained."""


class ApiError(DeploymentStatsError):
    """Raised when a GitHub API request fails or returns an unexpected response."""
