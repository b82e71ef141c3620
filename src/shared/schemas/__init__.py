from .dto import (
    AccessToken,
    CatalogShape,
    CurrencyShape,
    FunctionSettings,
    TrackEvent,
)
