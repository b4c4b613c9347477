"""
Client session used for stdio, SSE and streamable HTTP server connections.

Extends the base MCP client session with request and notification logging
tagged with the server name.
"""

from typing import Optional

from mcp import ClientSession
from mcp.shared.session import ReceiveNotificationT, SendNotificationT

from mcpmux.utils.logging import get_logger

logger = get_logger(__name__)


class MuxClientSession(ClientSession):
    """
    Client session for connections made by the mcpmux manager.
    """

    def __init__(self, *args, server_name: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.server_name = server_name

    async def send_request(self, request, result_type, *args, **kwargs):
        logger.debug(f"{self.server_name}: send_request: request=", data=request.model_dump())
        try:
            result = await super().send_request(request, result_type, *args, **kwargs)
        except Exception as e:
            logger.error(f"{self.server_name}: send_request failed: {e}")
            raise
        logger.debug(f"{self.server_name}: send_request: response=", data=result.model_dump())
        return result

    async def send_notification(self, notification: SendNotificationT, *args, **kwargs) -> None:
        logger.debug(f"{self.server_name}: send_notification:", data=notification.model_dump())
        try:
            return await super().send_notification(notification, *args, **kwargs)
        except Exception as e:
            logger.error(f"{self.server_name}: send_notification failed", data=e)
            raise

    async def _received_notification(self, notification: ReceiveNotificationT) -> None:
        logger.debug(
            f"{self.server_name}: _received_notification: notification=",
            data=notification.model_dump(),
        )
        return await super()._received_notification(notification)
