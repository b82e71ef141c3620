from .exchange_rate_service import RateProvider
from .firestore_catalog_service import CatalogEnricher
from .gcp_auth_service import AssertionSigner, TokenExchanger
from .profile_service import ProfileLookup
from .segment_service import Forwarder
