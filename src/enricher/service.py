"""
Service orchestrating the enrichment of a single track event.
"""

import time
from typing import Any, Dict, Mapping, Optional, Union

import aiohttp

from shared.cache.token_cache import TokenCache, token_cache
from shared.schemas.dto import (
    AccessToken,
    CatalogShape,
    FunctionSettings,
    TrackEvent,
)
from shared.services.exchange_rate_service import RateProvider
from shared.services.firestore_catalog_service import CatalogEnricher
from shared.services.profile_service import ProfileLookup
from shared.services.segment_service import Forwarder
from shared.utils.helpers import is_number
from shared.utils.logger import logger

from .currency import CurrencyNormalizer


class EnrichmentPipeline:
    """
    Enriches a track event and forwards it.

    Steps, in order:
    1. Make sure a valid access token is cached
    2. Resolve contact traits for identified users
    3. Convert amounts to the target currency
    4. Add catalog data and margins to products (one request per item, concurrently)
    5. Forward the event

    Any failing step aborts the run; nothing is forwarded.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        cache: Optional[TokenCache] = None,
        profile_lookup: Optional[ProfileLookup] = None,
        rate_provider: Optional[RateProvider] = None,
        catalog: Optional[CatalogEnricher] = None,
        forwarder: Optional[Forwarder] = None,
    ):
        self.session = session
        self._owns_session = session is None
        self.cache = cache or token_cache
        self.profile_lookup = profile_lookup
        self.rate_provider = rate_provider
        self.catalog = catalog
        self.forwarder = forwarder

    def _initialize_services(self):
        """Create the services that were not injected, sharing one session."""
        if not self.session:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        if not self.profile_lookup:
            self.profile_lookup = ProfileLookup(self.session)
        if not self.rate_provider:
            self.rate_provider = RateProvider(self.session)
        if not self.catalog:
            self.catalog = CatalogEnricher(self.session)
        if not self.forwarder:
            self.forwarder = Forwarder(self.session)

    async def add_traits(self, event: TrackEvent, settings: FunctionSettings):
        if event.user_id is None:
            return
        traits = await self.profile_lookup.resolve_traits(
            settings.segment_personas_space_id,
            settings.segment_personas_access_token,
            event.user_id,
        )
        if traits:
            event.context["traits"] = traits

    async def add_product_data(self, event: TrackEvent, token: AccessToken):
        """Merge catalog data into the event's products or flat product."""
        shape = event.catalog_shape()

        if shape == CatalogShape.PRODUCT_LIST:
            products = await self.catalog.enrich_line_items(event.products, token)
            event.properties["products"] = products

            margins = [product.get("margin") for product in products]
            if "revenue" in event.properties and all(
                is_number(margin) for margin in margins
            ):
                event.properties["margin"] = round(sum(margins), 2)

        elif shape == CatalogShape.SINGLE_PRODUCT:
            event.properties = await self.catalog.enrich_line_item(
                event.properties, token
            )

    async def run(
        self, event: Mapping[str, Any], settings: Union[FunctionSettings, Mapping]
    ) -> Dict[str, Any]:
        """
        Enrich and forward one event.

        Args:
            event: The raw track event
            settings: Credentials, as FunctionSettings or the host's settings mapping

        Returns:
            The event as forwarded

        Raises:
            EnrichmentError: Any failing step; the event is not forwarded
        """
        if not isinstance(settings, FunctionSettings):
            settings = FunctionSettings.from_dict(settings)

        start_time = time.time()
        track_event = TrackEvent.from_dict(event)
        self._initialize_services()

        token = await self.cache.get_valid_token(settings, session=self.session)
        await self.add_traits(track_event, settings)
        track_event = await CurrencyNormalizer(self.rate_provider).normalize(
            track_event
        )
        await self.add_product_data(track_event, token)

        body = track_event.to_dict()
        logger.debug(f"Enriched event: {body}")
        await self.forwarder.send(body, settings.http_api_key)

        logger.info(f"Event enriched and forwarded in {time.time() - start_time:.2f}s")
        return body

    async def close(self):
        """Close the HTTP session if the pipeline created it."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
