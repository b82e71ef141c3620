"""
Product catalog enrichment backed by Firestore.

Fetches a product document per line item, merges its fields into the item
and derives the item's margin.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from shared.schemas.dto import AccessToken
from shared.services.http_service import HttpService
from shared.utils.configs import gcp_configs
from shared.utils.errors import CatalogError
from shared.utils.helpers import compute_margin, parse_int
from shared.utils.logger import logger
from shared.utils.types import ErrorType


def unwrap_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten Firestore typed values.

    Firestore wraps every value in a one-key object naming its type, e.g.
    {"cost": {"integerValue": "20"}} becomes {"cost": "20"}.
    """
    record = {}
    for name, wrapped in (fields or {}).items():
        if isinstance(wrapped, dict) and wrapped:
            record[name] = next(iter(wrapped.values()))
        else:
            record[name] = wrapped
    return record


class CatalogEnricher(HttpService):
    """
    Adds catalog data (cost) and the derived margin to product line items.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: str = gcp_configs["firestore_base_url"],
        project_id: str = gcp_configs["gcp_project_id"],
        collection: str = gcp_configs["catalog_collection"],
        timeout: Optional[int] = None,
    ):
        super().__init__(session, timeout)
        self.documents_url = (
            f"{base_url.rstrip('/')}/projects/{project_id}"
            f"/databases/(default)/documents/{collection}"
        )

    async def fetch_record(self, product_id: str, token: AccessToken) -> Dict[str, Any]:
        """
        Fetch the catalog record of a product.

        Args:
            product_id: Id of the product document
            token: Access token with datastore scope

        Returns:
            The product's fields, or an empty dict if the product is unknown

        Raises:
            CatalogError: On any status other than 200 or 404
        """
        url = f"{self.documents_url}/{product_id}"
        try:
            async with self.get_session().get(
                url,
                headers={"Authorization": f"Bearer {token.token}"},
                timeout=self.timeout,
            ) as response:
                if response.status == 404:
                    logger.info(f"Product {product_id} not found in catalog")
                    return {}
                if response.status != 200:
                    raise CatalogError(
                        message=(
                            f"Catalog API status {response.status} "
                            f"(Reason: {response.reason}) for product_id: {product_id}"
                        ),
                        product_id=product_id,
                        error_type=ErrorType.CATALOG_ERROR,
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except CatalogError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CatalogError(
                message=f"Failed to reach catalog for product_id {product_id}: {e}",
                product_id=product_id,
                error_type=ErrorType.FETCH_ERROR,
                status_code=503,
            )

        record = unwrap_fields((data or {}).get("fields"))
        if "cost" in record:
            cost = parse_int(record["cost"])
            if cost is None:
                logger.warning(
                    f"Dropping non-numeric cost {record['cost']!r} for {product_id}"
                )
                del record["cost"]
            else:
                record["cost"] = cost
        return record

    async def enrich_line_item(
        self, item: Dict[str, Any], token: AccessToken
    ) -> Dict[str, Any]:
        """
        Merge catalog data into a line item and compute its margin.

        The input item is never modified; an enriched copy is returned.
        Items without a product_id, and products missing from the catalog,
        come back unchanged.

        Raises:
            CatalogError: If the catalog lookup fails
        """
        product_id = item.get("product_id")
        if product_id is None:
            return item

        record = await self.fetch_record(str(product_id), token)
        if not record:
            return item

        # Without revenue or price there is no margin to report cost against
        if "revenue" not in item and "price" not in item:
            record.pop("cost", None)

        enriched = {**item, **record}
        margin = compute_margin(enriched)
        if margin is None:
            enriched.pop("margin", None)
        else:
            enriched["margin"] = margin
        return enriched

    async def enrich_line_items(
        self, items: List[Dict[str, Any]], token: AccessToken
    ) -> List[Dict[str, Any]]:
        """
        Enrich every item concurrently, preserving order.

        Raises:
            CatalogError: The first failure; lookups still running are cancelled
        """
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self.enrich_line_item(item, token))
                    for item in items
                ]
        except ExceptionGroup as eg:
            first = eg.exceptions[0]
            logger.error(f"Catalog enrichment failed for {len(eg.exceptions)} item(s)")
            raise first

        return [task.result() for task in tasks]
