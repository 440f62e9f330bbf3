"""Result caching."""

from .result_cache import ResultCache

__all__ = ["ResultCache"]
