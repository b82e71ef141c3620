"""
Google service account authentication.

Builds an RS256 signed assertion from service account credentials and
exchanges it for an OAuth2 access token.
"""

import asyncio
import base64
import json
import time
from typing import Callable, Optional

import aiohttp
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from shared.schemas.dto import AccessToken, FunctionSettings
from shared.services.http_service import HttpService
from shared.utils.configs import base_configs, gcp_configs
from shared.utils.errors import AuthError
from shared.utils.logger import logger
from shared.utils.types import ErrorType

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


def _b64(data: dict) -> str:
    compact = json.dumps(data, separators=(",", ":"))
    return base64.b64encode(compact.encode("utf-8")).decode("ascii")


class AssertionSigner:
    """
    Signs assertions proving the service account's identity to Google.

    The assertion is `header.payload.signature` where header and payload are
    base64 encoded JSON and the signature is RSA-SHA256 over
    `header.payload`.
    """

    def __init__(
        self,
        audience: str = gcp_configs["token_audience"],
        scope: str = gcp_configs["scope"],
        lifetime: int = base_configs["token_lifetime"],
    ):
        self.audience = audience
        self.scope = scope
        self.lifetime = lifetime

    def _load_private_key(self, pem: str) -> rsa.RSAPrivateKey:
        try:
            key = serialization.load_pem_private_key(
                pem.encode("utf-8"), password=None
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise AuthError(
                message=f"Failed to load service account private key: {e}",
                error_type=ErrorType.AUTH_ERROR,
                status_code=500,
            )
        if not isinstance(key, rsa.RSAPrivateKey):
            raise AuthError(
                message="Service account private key is not an RSA key",
                error_type=ErrorType.AUTH_ERROR,
                status_code=500,
            )
        return key

    def sign(self, settings: FunctionSettings, issued_at: Optional[int] = None) -> str:
        """
        Build a signed assertion.

        Args:
            settings: Credentials holding the key, key id and issuer email
            issued_at: Issue time in epoch seconds, defaults to now

        Returns:
            The `header.payload.signature` assertion

        Raises:
            AuthError: If the key cannot be used
        """
        issued = int(time.time()) if issued_at is None else int(issued_at)
        header = {
            "kid": settings.private_key_id,
            "alg": "RS256",
            "typ": "JWT",
        }
        payload = {
            "iss": settings.client_email,
            "sub": settings.client_email,
            "aud": self.audience,
            "iat": issued,
            "exp": issued + self.lifetime,
            "scope": self.scope,
        }

        signing_input = f"{_b64(header)}.{_b64(payload)}"
        key = self._load_private_key(settings.private_key)
        signature = key.sign(
            signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256()
        )
        return f"{signing_input}.{base64.b64encode(signature).decode('ascii')}"


class TokenExchanger(HttpService):
    """Exchanges a signed assertion for an access token at the OAuth2 endpoint."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        token_url: str = gcp_configs["token_url"],
        clock: Callable[[], float] = time.time,
        timeout: Optional[int] = None,
    ):
        super().__init__(session, timeout)
        self.token_url = token_url
        self.clock = clock

    async def exchange(
        self, assertion: str, session: Optional[aiohttp.ClientSession] = None
    ) -> AccessToken:
        """
        Exchange an assertion for an access token.

        Args:
            assertion: Signed assertion from AssertionSigner
            session: Session to issue the request on instead of the service's own

        Returns:
            AccessToken with an absolute expiry of now + expires_in

        Raises:
            AuthError: On a non-200 response, a transport failure, an empty token
                or an unparseable expires_in
        """
        if not assertion:
            raise AuthError(message="Empty assertion", error_type=ErrorType.AUTH_ERROR)

        form = {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
        try:
            async with (session or self.get_session()).post(
                self.token_url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            ) as response:
                if response.status != 200:
                    raise AuthError(
                        message=f"Access token request failed: HTTP {response.status}",
                        error_type=ErrorType.AUTH_ERROR,
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except AuthError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthError(
                message=f"Failed to reach token endpoint: {e}",
                error_type=ErrorType.FETCH_ERROR,
                status_code=503,
            )

        access_token = (data or {}).get("access_token")
        if not access_token:
            raise AuthError(
                message=f"Empty access_token {json.dumps(data)}",
                error_type=ErrorType.AUTH_ERROR,
            )

        expires_in = data.get("expires_in")
        expires_at = None
        if expires_in is not None:
            try:
                expires_at = int(self.clock()) + int(expires_in)
            except (TypeError, ValueError):
                raise AuthError(
                    message=f"Invalid expires_in {expires_in!r} from token endpoint",
                    error_type=ErrorType.AUTH_ERROR,
                )
        logger.info(f"Obtained access token expiring at {expires_at}")
        return AccessToken(token=access_token, expires_at=expires_at)
