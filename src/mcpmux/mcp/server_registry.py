"""
Server registry holding each server's settings, status and live connection.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel

from mcpmux.config import MCPServerSettings, ServerStatus
from mcpmux.errors import ServerExistsError, ServerNotFoundError
from mcpmux.mcp.connection import ProviderHandle


class ServerStatusReport(BaseModel):
    """Result of probing a server's liveness."""

    name: str
    status: ServerStatus
    error: Optional[str] = None


class ServerEntry:
    """
    A registered server.

    ``settings.status`` is the server's current status; ``connection`` is set
    only while the server is active.
    """

    def __init__(self, settings: MCPServerSettings):
        self.settings = settings
        self.connection: Optional[ProviderHandle] = None

    @property
    def name(self) -> str:
        return self.settings.name

    @property
    def status(self) -> ServerStatus:
        return self.settings.status

    @status.setter
    def status(self, value: ServerStatus) -> None:
        self.settings.status = value

    @property
    def is_active(self) -> bool:
        return (
            self.status == ServerStatus.ACTIVATE
            and self.connection is not None
            and self.connection.is_connected
        )

    @property
    def is_lost(self) -> bool:
        """Marked active, but the transport closed on its own."""
        return (
            self.status == ServerStatus.ACTIVATE
            and self.connection is not None
            and not self.connection.is_connected
        )

    def snapshot(self) -> MCPServerSettings:
        """A copy of the settings that callers may keep or mutate."""
        return self.settings.detached_copy()


class ServerRegistry:
    """
    Maps server names to their entries, in insertion order.

    The registry does no locking of its own; the manager serializes mutations.
    """

    def __init__(self, servers: Iterable[MCPServerSettings] = ()):
        self._entries: Dict[str, ServerEntry] = {}
        for settings in servers:
            self.add(ServerEntry(settings))

    def __contains__(self, server_name: str) -> bool:
        return server_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ServerEntry]:
        return iter(list(self._entries.values()))

    def add(self, entry: ServerEntry) -> ServerEntry:
        """
        Register an entry.

        Raises:
            ServerExistsError: If the name is already registered.
        """
        if entry.name in self._entries:
            raise ServerExistsError(entry.name)
        self._entries[entry.name] = entry
        return entry

    def get(self, server_name: str) -> Optional[ServerEntry]:
        return self._entries.get(server_name)

    def require(self, server_name: str) -> ServerEntry:
        """
        Look up an entry.

        Raises:
            ServerNotFoundError: If the name is not registered.
        """
        entry = self._entries.get(server_name)
        if entry is None:
            raise ServerNotFoundError(server_name)
        return entry

    def remove(self, server_name: str) -> Optional[ServerEntry]:
        return self._entries.pop(server_name, None)

    def active_entries(self) -> List[ServerEntry]:
        return [entry for entry in self._entries.values() if entry.is_active]

    def names(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
