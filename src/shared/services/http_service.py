"""
Base class for services that talk to an HTTP API.
"""

from typing import Optional

import aiohttp

from shared.utils.helpers import request_timeout


class HttpService:
    """
    Holds the aiohttp session a service issues its requests on.

    A session passed in is shared and left open; a session created lazily
    by the service is owned by it and closed in `close()`.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[int] = None,
    ):
        self.session = session
        self._owns_session = session is None
        self.timeout = request_timeout(timeout)

    def get_session(self) -> aiohttp.ClientSession:
        if not self.session:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    async def close(self):
        """Close the session if this service created it."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
