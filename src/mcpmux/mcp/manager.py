"""
Server manager combining multiple MCP servers behind one interface.
"""

import asyncio
import logging
from asyncio import Lock, gather
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar, Union

from mcp.types import CallToolResult, Prompt, Tool

from mcpmux.config import MCPFilterConfig, MCPServerSettings, ServerStatus, Settings
from mcpmux.config.settings import DEFAULT_TIMEOUT_SECONDS
from mcpmux.core.events import (
    SERVER_ERROR,
    SERVER_STARTED,
    SERVER_STOPPED,
    EventEmitter,
    EventHandler,
)
from mcpmux.errors import (
    ServerActivationError,
    ServerExistsError,
    ServerNotFoundError,
    ToolCallTimeoutError,
)
from mcpmux.mcp.connection import ConnectionFactory, ProviderHandle, create_connection
from mcpmux.mcp.filters import filter_items
from mcpmux.mcp.gen_client import gen_client
from mcpmux.mcp.identity import prompt_id, tool_id
from mcpmux.mcp.server_registry import ServerEntry, ServerRegistry, ServerStatusReport
from mcpmux.utils.logging import get_logger

logger = get_logger(__name__)

ServerConfig = Union[MCPServerSettings, Dict[str, Any]]
T = TypeVar("T", Tool, Prompt)

# Changing any of these on an active server reopens its connection
CONNECTION_FIELDS = frozenset(
    {"type", "command", "args", "env", "cwd", "url", "headers", "mcp_server", "read_timeout_seconds"}
)


class AggregatedTool(Tool):
    """
    A server's tool, unchanged, tagged with its aggregation id and server name.
    """

    id: str
    server_name: str


class AggregatedPrompt(Prompt):
    """
    A server's prompt, unchanged, tagged with its aggregation id and server name.
    """

    id: str
    server_name: str


def _as_settings(config: ServerConfig) -> MCPServerSettings:
    if isinstance(config, MCPServerSettings):
        return config.detached_copy()
    return MCPServerSettings.model_validate(config).detached_copy()


def _field_values(settings: MCPServerSettings) -> Dict[str, Any]:
    values = {field: getattr(settings, field) for field in MCPServerSettings.model_fields}
    values.update(settings.model_extra or {})
    return values


def _supplied_fields(config: ServerConfig) -> Dict[str, Any]:
    if isinstance(config, MCPServerSettings):
        changes = {field: getattr(config, field) for field in config.model_fields_set}
        changes["name"] = config.name
        return changes
    return dict(config)


class MCPManager:
    """
    Keeps a registry of MCP servers, their status and connections, and exposes
    their tools and prompts as one collection.

    Mutations of the registry are serialized; listing and tool calls are not.
    """

    def __init__(
        self,
        servers: Iterable[ServerConfig] = (),
        *,
        is_debug: bool = False,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        connection_factory: ConnectionFactory = create_connection,
    ):
        """
        Initialize the manager. No connection is opened until init().

        Args:
            servers: Server settings (models or plain dicts) to register.
            is_debug: Log this manager's diagnostics at INFO instead of DEBUG.
            default_timeout: Tool call timeout in seconds for servers without their own.
            connection_factory: Creates the connection for a server's settings.

        Raises:
            ServerExistsError: If two servers share a name.
        """
        self.is_debug = is_debug
        self.default_timeout = default_timeout
        self._connection_factory = connection_factory
        self._registry = ServerRegistry(_as_settings(server) for server in servers)
        self._events = EventEmitter()
        self._lock = Lock()
        self._init_task: Optional[asyncio.Future] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "MCPManager":
        """Build a manager from loaded configuration."""
        return cls(
            settings.servers(),
            is_debug=settings.mcp.is_debug,
            default_timeout=settings.mcp.default_timeout,
            **kwargs,
        )

    async def __aenter__(self) -> "MCPManager":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.cleanup()

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe to 'server-started', 'server-stopped' or 'server-error'."""
        self._events.on(event_type, handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        self._events.off(event_type, handler)

    def _debug(self, message: str, data: Any = None) -> None:
        logger.log(logging.INFO if self.is_debug else logging.DEBUG, message, data=data)

    async def init(self) -> None:
        """
        Activate every server whose status is 'activate'.

        Runs once: concurrent and later callers wait for the same pass. A
        server that fails to connect is marked 'error' and does not stop the
        others.
        """
        task = self._init_task
        if task is None:
            task = self._init_task = asyncio.ensure_future(self._initialize())
        try:
            await asyncio.shield(task)
        except Exception:
            if self._init_task is task:
                self._init_task = None
            raise

    async def _initialize(self) -> None:
        async with self._lock:
            pending = [
                entry
                for entry in self._registry
                if entry.status == ServerStatus.ACTIVATE and entry.connection is None
            ]
            self._debug(f"Initializing {len(pending)} server(s)", data=[e.name for e in pending])

            results = await gather(
                *(self._activate(entry) for entry in pending),
                return_exceptions=True,
            )

            for entry, result in zip(pending, results):
                if isinstance(result, ServerActivationError):
                    continue
                if isinstance(result, BaseException):
                    logger.error(f"{entry.name}: Unexpected error during initialization: {result}")

        self._debug("Initialization finished", data=self._registry.names())

    async def _activate(self, entry: ServerEntry) -> None:
        name = entry.name
        self._debug(f"{name}: Activating server", data={"type": entry.settings.kind.value})

        connection = self._connection_factory(entry.settings)
        try:
            await connection.connect()
        except Exception as exc:
            entry.connection = None
            entry.status = ServerStatus.ERROR
            await self._close_quietly(name, connection)
            logger.error(f"{name}: Failed to activate server: {exc}")
            self._events.emit(SERVER_ERROR, {"name": name, "error": exc})
            if isinstance(exc, ServerActivationError):
                raise
            raise ServerActivationError(name, exc) from exc

        entry.connection = connection
        entry.status = ServerStatus.ACTIVATE
        logger.info(f"{name}: Server activated")
        self._events.emit(SERVER_STARTED, {"name": name})

    async def _deactivate(self, entry: ServerEntry, status: ServerStatus = ServerStatus.ERROR) -> None:
        connection = entry.connection
        entry.connection = None
        entry.status = status
        if connection is None:
            return

        await self._close_quietly(entry.name, connection)
        logger.info(f"{entry.name}: Server stopped")
        self._events.emit(SERVER_STOPPED, {"name": entry.name})

    async def _close_quietly(self, name: str, connection: ProviderHandle) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.error(f"{name}: Error closing connection: {e}")

    async def _release_lost(self, entry: ServerEntry) -> None:
        name = entry.name
        connection = entry.connection
        entry.connection = None
        entry.status = ServerStatus.ERROR
        await self._close_quietly(name, connection)

        error = ConnectionError(f"Connection to server {name} was lost")
        logger.error(f"{name}: {error}")
        self._events.emit(SERVER_ERROR, {"name": name, "error": error})

    async def _release_lost_connections(self) -> None:
        if not any(entry.is_lost for entry in self._registry):
            return
        async with self._lock:
            for entry in self._registry:
                if entry.is_lost:
                    await self._release_lost(entry)

    async def add_server(self, config: ServerConfig) -> MCPServerSettings:
        """
        Register a server and, if its status is 'activate', connect to it.

        Returns:
            A copy of the registered settings.

        Raises:
            ServerExistsError: If the name is already registered.
            ServerActivationError: If connecting failed; nothing is registered.
        """
        settings = _as_settings(config)
        async with self._lock:
            if settings.name in self._registry:
                raise ServerExistsError(settings.name)

            entry = ServerEntry(settings)
            if settings.status == ServerStatus.ACTIVATE:
                await self._activate(entry)
            self._registry.add(entry)

        logger.info(f"{settings.name}: Server added")
        return entry.snapshot()

    async def update_server(self, config: ServerConfig) -> MCPServerSettings:
        """
        Merge the supplied fields into a registered server.

        A status change connects or disconnects the server. Changing the
        transport fields of an active server reconnects it.

        Raises:
            ServerNotFoundError: If the name is not registered.
            ServerActivationError: If a required (re)connect failed; the server
                is left with status 'error'.
        """
        changes = _supplied_fields(config)
        name = changes.get("name")
        if not name:
            raise ValueError("Server settings must include a name")

        async with self._lock:
            entry = self._registry.require(name)
            if entry.is_lost:
                await self._release_lost(entry)
            current = entry.settings
            reconnect = any(
                field in CONNECTION_FIELDS and value != getattr(current, field, None)
                for field, value in changes.items()
            )
            merged = MCPServerSettings.model_validate(
                {**_field_values(current), **changes}
            ).detached_copy()
            was_active = entry.is_active
            target = merged.status
            entry.settings = merged

            if target == ServerStatus.ACTIVATE:
                if was_active and reconnect:
                    await self._deactivate(entry)
                    await self._activate(entry)
                elif not was_active:
                    await self._activate(entry)
            elif was_active:
                await self._deactivate(entry, target)

        self._debug(f"{name}: Server updated", data=sorted(changes))
        return entry.snapshot()

    async def delete_server(self, name: str) -> bool:
        """
        Close a server's connection and remove it from the registry.

        Returns:
            False if no server has this name, True otherwise.
        """
        async with self._lock:
            entry = self._registry.get(name)
            if entry is None:
                logger.warning(f"{name}: Cannot delete unknown server")
                return False
            await self._deactivate(entry)
            self._registry.remove(name)

        logger.info(f"{name}: Server deleted")
        return True

    async def set_server_active(self, name: str, is_active: bool) -> None:
        """
        Connect or disconnect a registered server.

        Disconnecting sets the status to 'error'; connecting failures also end
        in 'error'.

        Raises:
            ServerNotFoundError: If the name is not registered.
            ServerActivationError: If connecting failed.
        """
        async with self._lock:
            entry = self._registry.require(name)
            if entry.is_lost:
                await self._release_lost(entry)
            if is_active:
                if not entry.is_active:
                    await self._activate(entry)
            elif entry.status == ServerStatus.ACTIVATE or entry.connection is not None:
                await self._deactivate(entry)

    async def activate(self, name: str) -> None:
        await self.set_server_active(name, True)

    async def deactivate(self, name: str) -> None:
        await self.set_server_active(name, False)

    async def get_server(self, name: str) -> Optional[MCPServerSettings]:
        """Return a copy of the server's settings, or None."""
        entry = self._registry.get(name)
        return entry.snapshot() if entry else None

    async def list_available_services(self) -> List[MCPServerSettings]:
        """Return a copy of every registered server's settings, whatever its status."""
        return [entry.snapshot() for entry in self._registry]

    def _select_entries(self, server_name: Optional[str]) -> List[ServerEntry]:
        if server_name is None:
            return self._registry.active_entries()
        entry = self._registry.get(server_name)
        if entry is None or not entry.is_active:
            self._debug(f"{server_name}: Server not found or not active")
            return []
        return [entry]

    async def _fetch_filtered(
        self,
        entry: ServerEntry,
        fetch: Callable[[ProviderHandle], Awaitable[Sequence[T]]],
        filter_config: Optional[MCPFilterConfig],
        kind: str,
    ) -> List[T]:
        connection = entry.connection
        if connection is None:
            return []
        try:
            items = await fetch(connection)
        except Exception as e:
            logger.error(f"{entry.name}: Error loading {kind} from server", data=e)
            return []

        visible = filter_items(items, filter_config)
        self._debug(
            f"{entry.name}: Server {kind} loaded",
            data={"total": len(items), "visible": len(visible)},
        )
        return visible

    async def _load_server_tools(self, entry: ServerEntry) -> List[AggregatedTool]:
        filters = entry.settings.filters
        tools = await self._fetch_filtered(
            entry,
            lambda connection: connection.list_tools(),
            filters.tools if filters else None,
            "tools",
        )
        return [
            AggregatedTool.model_validate(
                {
                    **tool.model_dump(by_alias=True),
                    "id": tool_id(entry.name, tool.name),
                    "server_name": entry.name,
                }
            )
            for tool in tools
        ]

    async def _load_server_prompts(self, entry: ServerEntry) -> List[AggregatedPrompt]:
        filters = entry.settings.filters
        prompts = await self._fetch_filtered(
            entry,
            lambda connection: connection.list_prompts(),
            filters.prompts if filters else None,
            "prompts",
        )
        return [
            AggregatedPrompt.model_validate(
                {
                    **prompt.model_dump(by_alias=True),
                    "id": prompt_id(entry.name, prompt.name),
                    "server_name": entry.name,
                }
            )
            for prompt in prompts
        ]

    async def list_tools(self, server_name: Optional[str] = None) -> List[AggregatedTool]:
        """
        Return the visible tools of one active server, or of all of them.

        Missing or inactive servers, and servers whose listing fails, contribute
        no tools; this method does not raise for them.
        """
        await self.init()
        await self._release_lost_connections()
        entries = self._select_entries(server_name)
        results = await gather(*(self._load_server_tools(entry) for entry in entries))
        return [tool for tools in results for tool in tools]

    async def list_prompts(self, server_name: Optional[str] = None) -> List[AggregatedPrompt]:
        """
        Return the visible prompts of one active server, or of all of them.
        """
        await self.init()
        await self._release_lost_connections()
        entries = self._select_entries(server_name)
        results = await gather(*(self._load_server_prompts(entry) for entry in entries))
        return [prompt for prompts in results for prompt in prompts]

    async def call_tool(
        self, client: str, name: str, args: Optional[Dict[str, Any]] = None
    ) -> CallToolResult:
        """
        Call a tool on the named server.

        Args:
            client: Name of the server.
            name: Name of the tool on that server.
            args: Arguments to pass to the tool.

        Returns:
            The server's result, unchanged.

        Raises:
            ServerNotFoundError: If the server is missing or not active.
            ToolCallTimeoutError: If the server's timeout elapsed first.
        """
        await self.init()
        await self._release_lost_connections()
        entry = self._registry.get(client)
        if entry is None or not entry.is_active:
            raise ServerNotFoundError(client)

        connection = entry.connection
        timeout = entry.settings.timeout if entry.settings.timeout is not None else self.default_timeout
        self._debug(
            "Requesting tool call",
            data={"tool_name": name, "server_name": client, "timeout": timeout},
        )

        try:
            return await asyncio.wait_for(connection.call_tool(name, args or {}), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"{client}: Tool '{name}' timed out after {timeout} seconds")
            raise ToolCallTimeoutError(client, name, timeout) from None

    async def check_server_status(self, config: ServerConfig) -> ServerStatusReport:
        """
        Probe whether a server answers a ping, without touching the registry.

        An active registered server is pinged over its connection; otherwise a
        temporary connection is opened. The probe is bounded by the default
        timeout. Failures are reported, not raised.
        """
        settings = _as_settings(config)
        entry = self._registry.get(settings.name)
        try:
            if entry is not None and entry.is_active:
                await asyncio.wait_for(entry.connection.ping(), timeout=self.default_timeout)
            else:
                await asyncio.wait_for(self._probe(settings), timeout=self.default_timeout)
        except Exception as exc:
            logger.warning(f"{settings.name}: Server is unreachable: {exc}")
            return ServerStatusReport(name=settings.name, status=ServerStatus.ERROR, error=str(exc))

        self._debug(f"{settings.name}: Server is reachable")
        return ServerStatusReport(name=settings.name, status=ServerStatus.ACTIVATE)

    async def _probe(self, settings: MCPServerSettings) -> None:
        async with gen_client(settings, self._connection_factory) as connection:
            await connection.ping()

    async def cleanup(self) -> None:
        """
        Close every connection and empty the registry.
        """
        async with self._lock:
            for entry in self._registry:
                await self._deactivate(entry)
            self._registry.clear()
        logger.info("All servers cleaned up")
