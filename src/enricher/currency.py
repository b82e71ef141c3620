"""
Normalization of monetary fields to the target currency.
"""

from typing import Any, Dict, Optional

from shared.schemas.dto import TrackEvent
from shared.services.exchange_rate_service import RateProvider
from shared.utils.configs import base_configs
from shared.utils.helpers import convert_amount, is_number
from shared.utils.logger import logger

MONETARY_FIELDS = ("revenue", "price")


class CurrencyNormalizer:
    """
    Rewrites revenue and price to the target currency.

    Every product in a list is assumed to be in the currency of the first
    product. All `currency` fields are rewritten to the target, including
    those of items that were already in it.
    """

    def __init__(
        self,
        rate_provider: RateProvider,
        target_currency: str = base_configs["target_currency"],
    ):
        self.rate_provider = rate_provider
        self.target_currency = target_currency

    def _convert_fields(self, fields: Dict[str, Any], multiplier: float):
        for name in MONETARY_FIELDS:
            if name not in fields:
                continue
            if not is_number(fields[name]):
                logger.warning(f"Leaving non-numeric {name}={fields[name]!r} as is")
            fields[name] = convert_amount(fields[name], multiplier)
        if "currency" in fields:
            fields["currency"] = self.target_currency

    def apply(self, event: TrackEvent, multiplier: float) -> TrackEvent:
        """Convert every monetary field of the event with a known multiplier."""
        self._convert_fields(event.properties, multiplier)
        for product in event.products:
            self._convert_fields(product, multiplier)
        return event

    async def normalize(self, event: TrackEvent) -> TrackEvent:
        """
        Convert the event's amounts when they are in another currency.

        Events without a currency, or already in the target currency, are
        returned unchanged.

        Raises:
            RateLookupError: If the exchange rate service fails
        """
        if not event.needs_currency_conversion(self.target_currency):
            return event

        source_currency: Optional[str] = event.source_currency()
        logger.info(
            f"Converting {event.currency_shape().value} amounts "
            f"from {source_currency} to {self.target_currency}"
        )
        multiplier = await self.rate_provider.get_multiplier(
            source_currency, self.target_currency
        )
        return self.apply(event, multiplier)
