"""
MCP connectivity for mcpmux.

This module provides the components for connecting to MCP servers, tracking
their status, and routing tool calls to the appropriate servers.
"""

from .connection import ServerConnection, ProviderHandle, ConnectionFactory, create_connection
from .client_session import MuxClientSession
from .server_registry import ServerRegistry, ServerEntry, ServerStatusReport
from .manager import MCPManager, AggregatedTool, AggregatedPrompt
from .gen_client import gen_client
from .identity import identify
from .filters import passes, filter_items

__all__ = [
    "ServerConnection",
    "ProviderHandle",
    "ConnectionFactory",
    "create_connection",
    "MuxClientSession",
    "ServerRegistry",
    "ServerEntry",
    "ServerStatusReport",
    "MCPManager",
    "AggregatedTool",
    "AggregatedPrompt",
    "gen_client",
    "identify",
    "passes",
    "filter_items",
]
