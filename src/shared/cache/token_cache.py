"""
Process-wide cache for the Google access token.
"""

import asyncio
import time
from typing import Callable, Optional

import aiohttp

from shared.schemas.dto import AccessToken, FunctionSettings
from shared.services.gcp_auth_service import AssertionSigner, TokenExchanger
from shared.utils.configs import base_configs
from shared.utils.logger import logger


class TokenCache:
    """
    Holds one access token and decides when to mint a new one.

    The refresh decision runs under a lock so concurrent invocations sharing
    the cache trigger a single exchange. A refreshed token replaces the
    cached one as a whole.

    Staleness:
        By default a token is refreshed once it is within `refresh_margin`
        seconds of its expiry (`expires_at - now < margin`).

        With `legacy_expiry_check=True` the comparison is
        `now - expires_at < margin`. That check is true for every token that
        has not been expired for at least `margin` seconds, so a still-valid
        token is refreshed on every call and an expired one is reused.
    """

    def __init__(
        self,
        signer: Optional[AssertionSigner] = None,
        exchanger: Optional[TokenExchanger] = None,
        refresh_margin: int = base_configs["token_refresh_margin"],
        clock: Callable[[], float] = time.time,
        legacy_expiry_check: bool = False,
    ):
        self.signer = signer or AssertionSigner()
        self.exchanger = exchanger or TokenExchanger(clock=clock)
        self.refresh_margin = refresh_margin
        self.clock = clock
        self.legacy_expiry_check = legacy_expiry_check
        self._token: Optional[AccessToken] = None
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def token(self) -> Optional[AccessToken]:
        return self._token

    def is_stale(self, token: Optional[AccessToken]) -> bool:
        """True when the token is missing, has no expiry, or is too close to expiring."""
        if token is None or token.expires_at is None:
            return True
        now = int(self.clock())
        if self.legacy_expiry_check:
            return now - token.expires_at < self.refresh_margin
        return token.expires_at - now < self.refresh_margin

    def _get_lock(self) -> asyncio.Lock:
        # asyncio.run starts a fresh loop per invocation; a lock is bound to one loop
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def get_valid_token(
        self,
        settings: FunctionSettings,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> AccessToken:
        """
        Return the cached token, refreshing it first when stale.

        Args:
            settings: Service account credentials used to mint a new token
            session: Session the token exchange is issued on

        Returns:
            A usable AccessToken

        Raises:
            AuthError: If signing or exchanging fails; the cache is left as it was
        """
        async with self._get_lock():
            if not self.is_stale(self._token):
                logger.debug("Reusing cached access token")
                return self._token

            logger.info("Access token missing or about to expire, requesting a new one")
            assertion = self.signer.sign(settings, issued_at=int(self.clock()))
            self._token = await self.exchanger.exchange(assertion, session=session)
            return self._token

    def clear(self):
        self._token = None


# Shared across invocations handled by the same process
token_cache = TokenCache()
