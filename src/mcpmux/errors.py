"""
Exceptions raised by the mcpmux manager.
"""

from typing import Optional


class MCPMuxError(Exception):
    """Base class for all mcpmux errors."""


class ServerExistsError(MCPMuxError):
    """A server with the same name is already registered."""

    def __init__(self, server_name: str):
        self.server_name = server_name
        super().__init__(f"Server with name {server_name} already exists")


class ServerNotFoundError(MCPMuxError):
    """The named server is not registered or is not active."""

    def __init__(self, server_name: str):
        self.server_name = server_name
        super().__init__(f"MCP Client {server_name} not found")


class ServerActivationError(MCPMuxError):
    """Connecting to a server failed."""

    def __init__(self, server_name: str, cause: Optional[BaseException] = None):
        self.server_name = server_name
        self.cause = cause
        message = f"Failed to activate server {server_name}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ToolCallTimeoutError(MCPMuxError, TimeoutError):
    """A tool call did not finish before the server's deadline."""

    def __init__(self, server_name: str, tool_name: str, timeout: float):
        self.server_name = server_name
        self.tool_name = tool_name
        self.timeout = timeout
        super().__init__(
            f"Tool '{tool_name}' on server '{server_name}' timed out after {timeout} seconds"
        )
