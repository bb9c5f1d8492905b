"""PowerPlatform / Dataverse metadata and plugin diagnostics over MCP."""

__version__ = "1.0.0"
