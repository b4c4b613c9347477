"""
Configuration management for mcpmux.
"""

from .settings import (
    Settings,
    MCPSettings,
    MCPServerSettings,
    MCPFilters,
    MCPFilterConfig,
    LoggingSettings,
    ServerStatus,
    ServerType,
    load_config,
)

__all__ = [
    "Settings",
    "MCPSettings",
    "MCPServerSettings",
    "MCPFilters",
    "MCPFilterConfig",
    "LoggingSettings",
    "ServerStatus",
    "ServerType",
    "load_config",
]
