"""
Data Transfer Objects (DTOs) for the application.
"""

import copy
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from shared.utils.configs import base_configs
from shared.utils.errors import ValidationError
from shared.utils.types import ErrorType

# Keys the hosting platform uses for the settings object
SETTINGS_KEYS = {
    "client_email": "clientEmail",
    "private_key": "privateKey",
    "private_key_id": "privateKeyId",
    "segment_personas_space_id": "segmentPersonasSpaceId",
    "segment_personas_access_token": "segmentPersonasAccessToken",
    "http_api_key": "httpApiKey",
}

SETTINGS_ENV_VARS = {
    "client_email": "GCP_CLIENT_EMAIL",
    "private_key": "GCP_PRIVATE_KEY",
    "private_key_id": "GCP_PRIVATE_KEY_ID",
    "segment_personas_space_id": "SEGMENT_PERSONAS_SPACE_ID",
    "segment_personas_access_token": "SEGMENT_PERSONAS_ACCESS_TOKEN",
    "http_api_key": "SEGMENT_HTTP_API_KEY",
}


@dataclass(frozen=True)
class AccessToken:
    """
    An OAuth2 access token and the moment it stops being valid.

    Attributes:
        token (str): The opaque bearer token.
        expires_at (int | None): Absolute expiry in seconds since the epoch.
            None means the expiry is unknown and the token must be refreshed.
    """

    token: str
    expires_at: Optional[int] = None


@dataclass
class FunctionSettings:
    """
    Credentials and identifiers the enrichment function runs with.

    Attributes:
        client_email (str): Service account email, used as issuer and subject.
        private_key (str): PEM encoded service account private key.
        private_key_id (str): Id of the private key, sent as the `kid` header.
        segment_personas_space_id (str): Profile store space id.
        segment_personas_access_token (str): Profile store access token.
        http_api_key (str): Write key of the tracking API source.
    """

    client_email: str = ""
    private_key: str = ""
    private_key_id: str = ""
    segment_personas_space_id: str = ""
    segment_personas_access_token: str = ""
    http_api_key: str = ""

    def __post_init__(self):
        # Keys pasted into settings forms arrive with escaped line breaks
        self.private_key = self.private_key.replace("\\n", "\n")

    @classmethod
    def from_dict(cls, settings: Mapping[str, Any]) -> "FunctionSettings":
        """
        Build settings from the host's settings object.

        Accepts both the camelCase keys the host delivers and snake_case keys.
        """
        values = {}
        for attr, host_key in SETTINGS_KEYS.items():
            value = settings.get(host_key, settings.get(attr))
            values[attr] = "" if value is None else str(value)
        return cls(**values)

    @classmethod
    def from_env(cls) -> "FunctionSettings":
        """Build settings from environment variables."""
        return cls(
            **{attr: os.getenv(var, "") for attr, var in SETTINGS_ENV_VARS.items()}
        )


class CurrencyShape(Enum):
    """How an event carries the currency its amounts are expressed in."""

    FLAT_MONETARY = "FLAT_MONETARY"
    PRODUCT_LIST = "PRODUCT_LIST"
    NONE = "NONE"


class CatalogShape(Enum):
    """Which part of an event can be enriched from the product catalog."""

    PRODUCT_LIST = "PRODUCT_LIST"
    SINGLE_PRODUCT = "SINGLE_PRODUCT"
    NONE = "NONE"


@dataclass
class TrackEvent:
    """
    A track event as delivered by the host.

    Only the fields the enrichment touches are typed; everything else
    (type, event name, anonymousId, timestamps, ...) is kept in `extra` and
    written back untouched.

    Attributes:
        message_id (str | None): Unique message id. Never forwarded, the
            tracking API assigns a new one.
        user_id (str | None): Actor identifier.
        properties (Dict[str, Any]): Event properties, flat monetary fields
            or a `products` list.
        context (Dict[str, Any]): Event context.
        extra (Dict[str, Any]): Remaining top-level fields.
    """

    message_id: Optional[str] = None
    user_id: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, event: Mapping[str, Any]) -> "TrackEvent":
        """
        Build a TrackEvent from a raw event, deep-copying it.

        Raises:
            ValidationError: If properties or context are not mappings
        """
        if not isinstance(event, Mapping):
            raise ValidationError(
                message=f"Event must be a mapping, got {type(event).__name__}",
                error_type=ErrorType.VALIDATION_ERROR,
            )
        event = copy.deepcopy(dict(event))

        properties = event.pop("properties", None)
        properties = {} if properties is None else properties
        context = event.pop("context", None)
        context = {} if context is None else context
        if not isinstance(properties, dict) or not isinstance(context, dict):
            raise ValidationError(
                message="Event properties and context must be objects",
                error_type=ErrorType.VALIDATION_ERROR,
            )

        products = properties.get("products")
        if products is not None and (
            not isinstance(products, list)
            or not all(isinstance(product, dict) for product in products)
        ):
            raise ValidationError(
                message="Event properties.products must be a list of objects",
                error_type=ErrorType.VALIDATION_ERROR,
            )

        # A null userId is forwarded as it arrived
        user_id = event.get("userId")
        if user_id is not None:
            del event["userId"]

        return cls(
            message_id=event.pop("messageId", None),
            user_id=user_id,
            properties=properties,
            context=context,
            extra=event,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the event for forwarding. The message id is left out.
        """
        body = dict(self.extra)
        if self.user_id is not None:
            body["userId"] = self.user_id
        body["properties"] = self.properties
        body["context"] = self.context
        return body

    @property
    def products(self) -> List[Dict[str, Any]]:
        products = self.properties.get("products")
        return products if isinstance(products, list) else []

    def currency_shape(self) -> CurrencyShape:
        """
        Classify how the event expresses its currency.

        A flat `currency` alongside `revenue` or `price` wins over a
        product list.
        """
        properties = self.properties
        if "currency" in properties and (
            "revenue" in properties or "price" in properties
        ):
            return CurrencyShape.FLAT_MONETARY
        products = self.products
        if products and isinstance(products[0], dict) and "currency" in products[0]:
            return CurrencyShape.PRODUCT_LIST
        return CurrencyShape.NONE

    def source_currency(self) -> Optional[str]:
        """The currency the event's amounts are in, taken from the first product for lists."""
        shape = self.currency_shape()
        if shape == CurrencyShape.FLAT_MONETARY:
            return self.properties["currency"]
        if shape == CurrencyShape.PRODUCT_LIST:
            return self.products[0]["currency"]
        return None

    def needs_currency_conversion(
        self, target_currency: str = base_configs["target_currency"]
    ) -> bool:
        source = self.source_currency()
        return source is not None and source != target_currency

    def catalog_shape(self) -> CatalogShape:
        if self.products:
            return CatalogShape.PRODUCT_LIST
        if "products" not in self.properties and "product_id" in self.properties:
            return CatalogShape.SINGLE_PRODUCT
        return CatalogShape.NONE
