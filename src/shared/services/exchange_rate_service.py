"""
Exchange rate lookups.
"""

import asyncio
from typing import Optional

import aiohttp

from shared.services.http_service import HttpService
from shared.utils.configs import base_configs, exchange_rate_configs
from shared.utils.errors import RateLookupError
from shared.utils.helpers import is_number
from shared.utils.logger import logger
from shared.utils.types import ErrorType


class RateProvider(HttpService):
    """Fetches the multiplier converting one unit of a currency to the target currency."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        rates_url: str = exchange_rate_configs["rates_url"],
        access_key: Optional[str] = exchange_rate_configs["access_key"],
        timeout: Optional[int] = None,
    ):
        super().__init__(session, timeout)
        self.rates_url = rates_url
        self.access_key = access_key

    async def get_multiplier(
        self, source_currency: str, target_currency: str = base_configs["target_currency"]
    ) -> float:
        """
        Get the source to target conversion multiplier.

        Args:
            source_currency: Currency the amounts are in
            target_currency: Currency to convert to

        Returns:
            The multiplier, or 1 when the service has no usable rate

        Raises:
            RateLookupError: On a non-200 response or a transport failure
        """
        params = {"base": source_currency, "symbols": target_currency}
        if self.access_key:
            params["access_key"] = self.access_key

        try:
            async with self.get_session().get(
                self.rates_url, params=params, timeout=self.timeout
            ) as response:
                if response.status != 200:
                    raise RateLookupError(
                        message=f"Exchange rate request failed: HTTP {response.status}",
                        error_type=ErrorType.RATE_LOOKUP_ERROR,
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except RateLookupError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RateLookupError(
                message=f"Failed to reach exchange rate service: {e}",
                error_type=ErrorType.FETCH_ERROR,
                status_code=503,
            )

        rates = (data or {}).get("rates") or {}
        multiplier = rates.get(target_currency)
        if multiplier is None and rates:
            multiplier = next(iter(rates.values()))

        if not is_number(multiplier) or multiplier <= 0:
            logger.warning(
                f"No usable {source_currency}->{target_currency} rate in {data}, using 1"
            )
            return 1

        logger.info(f"{source_currency}->{target_currency} multiplier: {multiplier}")
        return multiplier
