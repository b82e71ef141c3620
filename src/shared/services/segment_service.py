"""
Forwards enriched events to the Segment HTTP tracking API.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from shared.services.http_service import HttpService
from shared.utils.configs import segment_configs
from shared.utils.errors import ForwardError
from shared.utils.helpers import basic_auth_header
from shared.utils.logger import logger
from shared.utils.types import ErrorType


class Forwarder(HttpService):
    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        tracking_url: str = segment_configs["tracking_url"],
        timeout: Optional[int] = None,
    ):
        super().__init__(session, timeout)
        self.tracking_url = tracking_url

    async def send(self, event: Dict[str, Any], api_key: str) -> None:
        """
        Post the event as JSON, authenticated with the source write key.

        Raises:
            ForwardError: On a non-200 response or a transport failure
        """
        try:
            async with self.get_session().post(
                self.tracking_url,
                json=event,
                headers=basic_auth_header(api_key),
                timeout=self.timeout,
            ) as response:
                if response.status != 200:
                    raise ForwardError(
                        message=(
                            f"Tracking API status {response.status}. "
                            f"Reason: {response.reason}"
                        ),
                        error_type=ErrorType.FORWARD_ERROR,
                        status_code=response.status,
                    )
        except ForwardError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ForwardError(
                message=f"Failed to reach tracking API: {e}",
                error_type=ErrorType.FETCH_ERROR,
                status_code=503,
            )

        logger.info(f"Forwarded event {event.get('event', '')!r} to tracking API")
