"""
Profile store lookups for user contact traits.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from shared.services.http_service import HttpService
from shared.utils.configs import segment_configs
from shared.utils.errors import ProfileLookupError
from shared.utils.helpers import basic_auth_header
from shared.utils.logger import logger
from shared.utils.types import ErrorType


class ProfileLookup(HttpService):
    """
    Resolves a user's email and phone from the Segment Profiles API.

    A user that is not in the profile store yet (a new lead) is not an
    error: the lookup returns no traits and the event is sent as is.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: str = segment_configs["profiles_base_url"],
        timeout: Optional[int] = None,
    ):
        super().__init__(session, timeout)
        self.base_url = base_url.rstrip("/")

    def traits_url(self, space_id: str, user_id: str) -> str:
        return (
            f"{self.base_url}/spaces/{space_id}/collections/users"
            f"/profiles/user_id:{user_id}/traits"
        )

    async def resolve_traits(
        self, space_id: str, access_token: str, user_id: str
    ) -> Dict[str, Any]:
        """
        Look up the contact traits of a user.

        Args:
            space_id: Profile store space id
            access_token: Profile store access token
            user_id: The event's userId

        Returns:
            The traits object, empty when the user is unknown

        Raises:
            ProfileLookupError: On any status other than 200 or 404
        """
        url = self.traits_url(space_id, user_id)
        try:
            async with self.get_session().get(
                url,
                params={"include": "email,phone"},
                headers=basic_auth_header(access_token),
                timeout=self.timeout,
            ) as response:
                if response.status == 404:
                    logger.info(f"No profile found for {user_id=}")
                    return {}
                if response.status != 200:
                    raise ProfileLookupError(
                        message=f"Profile lookup failed with status: {response.status}",
                        error_type=ErrorType.PROFILE_LOOKUP_ERROR,
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except ProfileLookupError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProfileLookupError(
                message=f"Failed to reach profile store: {e}",
                error_type=ErrorType.FETCH_ERROR,
                status_code=503,
            )

        traits = (data or {}).get("traits") or {}
        logger.info(f"Resolved {len(traits)} traits for {user_id=}")
        return traits
