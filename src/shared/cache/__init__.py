from .token_cache import TokenCache, token_cache
