"""Client-side caches: Steam app id -> HLTB id mappings, and resolved results."""

from .id_cache import IdCache, IdCachePolicy
from .result_cache import CachedResult, ResultCache

__all__ = ["CachedResult", "IdCache", "IdCachePolicy", "ResultCache"]
