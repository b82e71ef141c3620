"""
Utility functions and shared resources.
"""

from .configs import (
    base_configs,
    exchange_rate_configs,
    gcp_configs,
    segment_configs,
)
from .errors import (
    AuthError,
    CatalogError,
    EnrichmentError,
    ForwardError,
    ProfileLookupError,
    RateLookupError,
    ValidationError,
)
from .helpers import (
    compute_margin,
    convert_amount,
    generate_response,
    is_number,
    parse_int,
    request_timeout,
)
from .logger import logger
from .types import ErrorType
