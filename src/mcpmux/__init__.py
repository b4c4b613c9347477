"""
mcpmux - run many MCP servers behind one tool and prompt namespace.
"""

__version__ = "0.1.0"

# MCP connectivity
from mcpmux.mcp.manager import MCPManager, AggregatedTool, AggregatedPrompt
from mcpmux.mcp.server_registry import ServerRegistry, ServerStatusReport
from mcpmux.mcp.connection import ServerConnection, ProviderHandle

# Events
from mcpmux.core.events import SERVER_STARTED, SERVER_STOPPED, SERVER_ERROR

# Errors
from mcpmux.errors import (
    MCPMuxError,
    ServerExistsError,
    ServerNotFoundError,
    ServerActivationError,
    ToolCallTimeoutError,
)

# Configuration
from mcpmux.config import load_config, Settings, MCPServerSettings, ServerStatus, ServerType

# Application
from mcpmux.app import MuxApp

__all__ = [
    "MCPManager",
    "AggregatedTool",
    "AggregatedPrompt",
    "ServerRegistry",
    "ServerStatusReport",
    "ServerConnection",
    "ProviderHandle",
    "SERVER_STARTED",
    "SERVER_STOPPED",
    "SERVER_ERROR",
    "MCPMuxError",
    "ServerExistsError",
    "ServerNotFoundError",
    "ServerActivationError",
    "ToolCallTimeoutError",
    "load_config",
    "Settings",
    "MCPServerSettings",
    "ServerStatus",
    "ServerType",
    "MuxApp",
]
