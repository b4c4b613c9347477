"""
Main application class for mcpmux.
"""

from contextlib import asynccontextmanager
from typing import Optional

from mcpmux.config.settings import Settings, load_config
from mcpmux.core.events import EventHandler
from mcpmux.mcp.manager import MCPManager
from mcpmux.mcp.connection import ConnectionFactory, create_connection
from mcpmux.utils.logging import configure_logging, get_logger, level_from_name


class MuxApp:
    """
    Loads configuration, sets up logging and owns one MCPManager.

    Example usage:
        app = MuxApp(config_path="mcpmux.config.yaml")

        async with app.run() as running_app:
            tools = await running_app.manager.list_tools()
    """

    def __init__(
        self,
        name: str = "mcpmux",
        config_path: Optional[str] = None,
        settings: Optional[Settings] = None,
        connection_factory: ConnectionFactory = create_connection,
    ):
        """
        Initialize the application with a name and optional settings.

        Args:
            name: Name of the application.
            config_path: Path to configuration file (if not provided, looks for mcpmux.config.yaml).
            settings: Application configuration object (if provided, takes precedence over config_path).
            connection_factory: Connection factory handed to the manager.
        """
        self.name = name
        self._config_path = config_path
        self._settings = settings
        self._connection_factory = connection_factory

        self._logger = None
        self._manager: Optional[MCPManager] = None
        self._initialized = False

    @property
    def manager(self) -> MCPManager:
        """Get the server manager."""
        if self._manager is None:
            raise RuntimeError(
                "MuxApp not initialized. Please call initialize() first, or use async with app.run()."
            )
        return self._manager

    @property
    def config(self) -> Settings:
        """Get the current application configuration."""
        if self._settings is None:
            raise RuntimeError("MuxApp configuration is not loaded yet.")
        return self._settings

    @property
    def logger(self):
        """Get the application logger."""
        if self._logger is None:
            self._logger = get_logger(f"mcpmux.{self.name}")
        return self._logger

    def _ensure_manager(self) -> MCPManager:
        if self._manager is None:
            if self._settings is None:
                self._settings = load_config(self._config_path)

            configure_logging(
                level=level_from_name(self._settings.logging.level),
                add_file_handler=self._settings.logging.file_path,
            )
            self._manager = MCPManager.from_settings(
                self._settings, connection_factory=self._connection_factory
            )
        return self._manager

    async def initialize(self):
        """Load configuration and activate the configured servers."""
        if self._initialized:
            return

        manager = self._ensure_manager()
        await manager.init()

        self._initialized = True
        services = await manager.list_available_services()
        self.logger.info(f"MuxApp initialized - app_name: {self.name}, servers: {len(services)}")

    async def cleanup(self):
        """Close every server connection."""
        if not self._initialized:
            return

        self.logger.info(f"MuxApp cleaning up - app_name: {self.name}")
        await self._manager.cleanup()

        self._manager = None
        self._initialized = False

    @asynccontextmanager
    async def run(self):
        """
        Run the application as an async context manager.

        Yields:
            The initialized application instance.
        """
        await self.initialize()
        try:
            yield self
        finally:
            await self.cleanup()

    def register_event_handler(self, event_type: str, handler: EventHandler):
        """
        Register a handler for a server lifecycle event.

        Handlers registered before initialize() also see the events of the
        initial activation pass.

        Args:
            event_type: 'server-started', 'server-stopped' or 'server-error'.
            handler: Function to call when the event occurs.
        """
        self._ensure_manager().on(event_type, handler)
