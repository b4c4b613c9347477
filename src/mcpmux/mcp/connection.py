"""
Long-lived connections to individual MCP servers.

A connection owns one transport (in-process, stdio, SSE or streamable HTTP) and
keeps it open inside a dedicated lifecycle task until it is closed.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import (
    Any,
    AsyncContextManager,
    AsyncGenerator,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
)

from anyio import Event
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.stdio import StdioServerParameters, get_default_environment
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.memory import create_connected_server_and_client_session
from mcp.types import CallToolResult, Prompt, Tool

from mcpmux.config import MCPServerSettings, ServerType
from mcpmux.errors import ServerActivationError
from mcpmux.mcp.client_session import MuxClientSession
from mcpmux.utils.logging import get_logger
from mcpmux.utils.stdio import stdio_client_with_rich_stderr

logger = get_logger(__name__)

SessionContextFactory = Callable[[MCPServerSettings], AsyncContextManager[ClientSession]]


class ProviderHandle(Protocol):
    """What the manager needs from a server connection, whatever its transport."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def list_tools(self) -> List[Tool]: ...

    async def list_prompts(self) -> List[Prompt]: ...

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> CallToolResult: ...

    async def ping(self) -> None: ...

    async def close(self) -> None: ...


ConnectionFactory = Callable[[MCPServerSettings], ProviderHandle]


def _read_timeout(config: MCPServerSettings) -> Optional[timedelta]:
    if config.read_timeout_seconds:
        return timedelta(seconds=config.read_timeout_seconds)
    return None


def _lowlevel_server(mcp_server: Any) -> Any:
    # FastMCP wraps the low-level Server that the in-memory transport runs
    return getattr(mcp_server, "_mcp_server", mcp_server)


@asynccontextmanager
async def _initialized_session(
    config: MCPServerSettings, read_stream, write_stream
) -> AsyncGenerator[ClientSession, None]:
    session = MuxClientSession(
        read_stream,
        write_stream,
        _read_timeout(config),
        server_name=config.name,
    )
    async with session:
        logger.info(f"{config.name}: Initializing server...")
        await session.initialize()
        logger.info(f"{config.name}: Initialized.")
        yield session


@asynccontextmanager
async def builtin_session(config: MCPServerSettings) -> AsyncGenerator[ClientSession, None]:
    async with create_connected_server_and_client_session(
        _lowlevel_server(config.mcp_server),
        read_timeout_seconds=_read_timeout(config),
    ) as session:
        logger.info(f"{config.name}: Connected to in-process server.")
        yield session


@asynccontextmanager
async def stdio_session(config: MCPServerSettings) -> AsyncGenerator[ClientSession, None]:
    server_params = StdioServerParameters(
        command=config.command,
        args=config.args or [],
        env={**get_default_environment(), **(config.env or {})},
        cwd=config.cwd,
    )
    async with stdio_client_with_rich_stderr(server_params) as (read_stream, write_stream):
        async with _initialized_session(config, read_stream, write_stream) as session:
            logger.info(f"{config.name}: Connected to server using stdio transport.")
            yield session


@asynccontextmanager
async def sse_session(config: MCPServerSettings) -> AsyncGenerator[ClientSession, None]:
    async with sse_client(config.url, headers=config.headers) as (read_stream, write_stream):
        async with _initialized_session(config, read_stream, write_stream) as session:
            logger.info(f"{config.name}: Connected to server using SSE transport.")
            yield session


@asynccontextmanager
async def streamable_http_session(config: MCPServerSettings) -> AsyncGenerator[ClientSession, None]:
    async with streamablehttp_client(config.url, headers=config.headers) as (
        read_stream,
        write_stream,
        _get_session_id,
    ):
        async with _initialized_session(config, read_stream, write_stream) as session:
            logger.info(f"{config.name}: Connected to server using streamable HTTP transport.")
            yield session


SESSION_FACTORIES: Dict[ServerType, SessionContextFactory] = {
    ServerType.BUILTIN: builtin_session,
    ServerType.STDIO: stdio_session,
    ServerType.SSE: sse_session,
    ServerType.STREAMABLE_HTTP: streamable_http_session,
}


class ServerConnection:
    """
    Represents a long-lived MCP server connection.

    The transport and the ClientSession are opened and closed by one lifecycle
    task; callers only see the session once it is fully initialized.
    """

    def __init__(
        self,
        server_config: MCPServerSettings,
        session_context_factory: Optional[SessionContextFactory] = None,
    ):
        self.server_name = server_config.name
        self.server_config = server_config
        self.session: ClientSession | None = None
        self._session_context_factory = (
            session_context_factory or SESSION_FACTORIES[server_config.kind]
        )
        self._task: Optional[asyncio.Task] = None
        self._error: Optional[BaseException] = None
        self._initialized_event: Optional[Event] = None
        self._shutdown_event: Optional[Event] = None
        self._closed_event: Optional[Event] = None

    @property
    def is_connected(self) -> bool:
        return self.session is not None

    async def connect(self) -> None:
        """
        Open the transport and wait until the session is initialized.

        Raises:
            ServerActivationError: If the transport or the MCP handshake failed.
        """
        if self._task is not None:
            if self.session is None:
                raise ServerActivationError(self.server_name, self._error)
            return

        self._error = None
        self._initialized_event = Event()
        self._shutdown_event = Event()
        self._closed_event = Event()
        self._task = asyncio.create_task(
            _server_lifecycle_task(self), name=f"mcpmux-{self.server_name}"
        )

        try:
            await self._initialized_event.wait()
        except asyncio.CancelledError:
            self.request_shutdown()
            raise

        if self.session is None:
            error = self._error
            await self.close()
            raise ServerActivationError(self.server_name, error)

    def request_shutdown(self) -> None:
        """
        Signal the lifecycle task to exit.
        """
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def close(self) -> None:
        """
        Close the session and transport. Safe to call more than once.
        """
        task = self._task
        if task is None:
            return
        self.request_shutdown()
        await self._closed_event.wait()
        self._task = None
        logger.debug(f"{self.server_name}: Connection closed.")

    def _require_session(self) -> ClientSession:
        if self.session is None:
            raise RuntimeError(f"{self.server_name}: Session is not connected")
        return self.session

    async def list_tools(self) -> List[Tool]:
        result = await self._require_session().list_tools()
        return result.tools or []

    async def list_prompts(self) -> List[Prompt]:
        result = await self._require_session().list_prompts()
        return result.prompts or []

    async def call_tool(
        self, name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> CallToolResult:
        return await self._require_session().call_tool(name=name, arguments=arguments)

    async def ping(self) -> None:
        await self._require_session().send_ping()


async def _server_lifecycle_task(server_conn: ServerConnection) -> None:
    """
    Manage the lifecycle of a single server connection.
    """
    server_name = server_conn.server_name
    try:
        async with server_conn._session_context_factory(server_conn.server_config) as session:
            server_conn.session = session
            server_conn._initialized_event.set()
            logger.info(f"{server_name}: Up and running with a persistent connection!")

            await server_conn._shutdown_event.wait()
            logger.info(f"{server_name}: Ending server session.")
    except Exception as exc:
        server_conn._error = exc
        logger.error(f"{server_name}: Lifecycle task encountered an error: {exc}")
    finally:
        server_conn.session = None
        # Unblock connect() if the transport never came up
        server_conn._initialized_event.set()
        server_conn._closed_event.set()


def create_connection(config: MCPServerSettings) -> ServerConnection:
    """
    Default connection factory used by the manager.
    """
    return ServerConnection(config)
