"""
Configuration settings for the application.
"""

import os
from typing import Optional, TypedDict


class BaseConfig(TypedDict):
    """Type definition for base configuration values.

    Attributes:
        target_currency: Currency every monetary field is normalized to
        request_timeout: Total timeout in seconds applied to every outbound HTTP call
        token_lifetime: Lifetime in seconds requested for signed assertions
        token_refresh_margin: Seconds before expiry at which a cached token is refreshed
    """

    target_currency: str
    request_timeout: int
    token_lifetime: int
    token_refresh_margin: int


class GcpConfig(TypedDict):
    """Type definition for Google Cloud endpoints.

    Attributes:
        token_url: OAuth2 endpoint the signed assertion is exchanged at
        token_audience: Audience claim placed in the assertion
        scope: Permissions requested for the access token
        firestore_base_url: Base URL of the Firestore REST API
        gcp_project_id: Project holding the product catalog
        catalog_collection: Firestore collection holding product documents
    """

    token_url: str
    token_audience: str
    scope: str
    firestore_base_url: str
    gcp_project_id: str
    catalog_collection: str


class SegmentConfig(TypedDict):
    profiles_base_url: str
    tracking_url: str


class ExchangeRateConfig(TypedDict):
    rates_url: str
    access_key: Optional[str]


base_configs: BaseConfig = {
    "target_currency": os.getenv("TARGET_CURRENCY", "DKK"),
    "request_timeout": int(os.getenv("REQUEST_TIMEOUT", 10)),
    "token_lifetime": 3600,
    "token_refresh_margin": 10,
}

gcp_configs: GcpConfig = {
    "token_url": os.getenv("GCP_TOKEN_URL", "https://oauth2.googleapis.com/token"),
    # Google issues tokens for assertions addressed to the v4 endpoint
    "token_audience": os.getenv(
        "GCP_TOKEN_AUDIENCE", "https://www.googleapis.com/oauth2/v4/token"
    ),
    "scope": "https://www.googleapis.com/auth/datastore",
    "firestore_base_url": os.getenv(
        "FIRESTORE_BASE_URL", "https://firestore.googleapis.com/v1beta1"
    ),
    "gcp_project_id": os.getenv("GCP_PROJECT_ID", "your-gcp-project"),
    "catalog_collection": os.getenv("CATALOG_COLLECTION", "Products"),
}

segment_configs: SegmentConfig = {
    "profiles_base_url": os.getenv(
        "SEGMENT_PROFILES_URL", "https://profiles.segment.com/v1"
    ),
    "tracking_url": os.getenv("SEGMENT_TRACKING_URL", "https://api.segment.io/v1/track"),
}

exchange_rate_configs: ExchangeRateConfig = {
    "rates_url": os.getenv(
        "EXCHANGE_RATE_URL", "https://api.exchangeratesapi.io/latest"
    ),
    "access_key": os.getenv("EXCHANGE_RATE_ACCESS_KEY"),
}
