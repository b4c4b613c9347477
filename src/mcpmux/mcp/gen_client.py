"""
Temporary connections to MCP servers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from mcpmux.config import MCPServerSettings
from mcpmux.mcp.connection import ConnectionFactory, ProviderHandle, create_connection
from mcpmux.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def gen_client(
    server_config: MCPServerSettings,
    connection_factory: ConnectionFactory = create_connection,
) -> AsyncGenerator[ProviderHandle, None]:
    """
    Open a short-lived connection to a server and close it on exit.

    The connection is independent of any registered connection for the same name.

    Args:
        server_config: Settings of the server to connect to.
        connection_factory: Factory creating the connection for the settings.

    Yields:
        ProviderHandle: A connected handle.
    """
    connection = connection_factory(server_config)
    logger.debug(f"{server_config.name}: Creating temporary connection")
    await connection.connect()
    try:
        yield connection
    finally:
        logger.debug(f"{server_config.name}: Closing temporary connection")
        await connection.close()
