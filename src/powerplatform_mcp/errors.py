# src/powerplatform_mcp/errors.py
"""
Error taxonomy for the PowerPlatform MCP server.

Every failure raised by the client or the services derives from
PowerPlatformError and carries a short ``kind`` string. The MCP layer
reports that kind next to the human-readable message, so callers can tell
"no such assembly" apart from "the request blew up".
"""


class PowerPlatformError(Exception):
    """Base class for all server-side failures."""

    kind = "error"


class ConfigurationError(PowerPlatformError):
    """Raised when required connection settings are missing."""

    kind = "configuration"


class AuthenticationError(PowerPlatformError):
    """Raised when the client credential exchange fails."""

    kind = "authentication"


class RemoteReadError(PowerPlatformError):
    """Raised when a Web API request fails or returns an unusable payload."""

    kind = "remote_read"


class NotFoundError(PowerPlatformError):
    """Raised when a named lookup matches nothing."""

    kind = "not_found"


class InvalidArgumentError(PowerPlatformError):
    """Raised for caller-supplied values that cannot be sent to the platform."""

    kind = "invalid_argument"
