"""Cache of compiled SQL templates.

Parsing depends only on the template text, the dialect and the native
parameter style, so those three form the key. The process-wide cache is
bounded and evicts the least recently used template.
"""

import threading
from collections import OrderedDict
from typing import TYPE_CHECKING, Final, Optional

from mypy_extensions import mypyc_attr

from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlbridge.core.compiler import ParsedQuery
    from sqlbridge.core.parameters import ParameterStyle

__all__ = ("CacheStats", "TemplateCache", "clear_all_caches", "get_template_cache")

logger = get_logger("core.cache")

DEFAULT_MAX_SIZE: Final = 5000

TemplateKey = tuple[str, str, str]


@mypyc_attr(allow_interpreted_subclasses=False)
class CacheStats:
    """Hit, miss and eviction counters."""

    __slots__ = ("evictions", "hits", "misses")

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @property
    def hit_rate(self) -> float:
        """Hits as a percentage of lookups."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def reset(self) -> None:
        self.hits = self.misses = self.evictions = 0

    def __repr__(self) -> str:
        return f"CacheStats(hit_rate={self.hit_rate:.1f}%, hits={self.hits}, misses={self.misses}, evictions={self.evictions})"


@mypyc_attr(allow_interpreted_subclasses=False)
class TemplateCache:
    """Thread-safe LRU cache of :class:`~sqlbridge.core.compiler.ParsedQuery` objects.

    Args:
        max_size: Number of templates kept before the least recently used is evicted
    """

    __slots__ = ("_entries", "_lock", "_max_size", "_stats")

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        self._entries: "OrderedDict[TemplateKey, ParsedQuery]" = OrderedDict()
        self._lock = threading.Lock()
        self._max_size = max_size
        self._stats = CacheStats()

    def get_parsed(self, template: str, dialect: str, parameter_style: "ParameterStyle") -> "Optional[ParsedQuery]":
        key = (template, dialect, parameter_style.value)
        with self._lock:
            parsed = self._entries.get(key)
            if parsed is None:
                self._stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self._stats.hits += 1
            return parsed

    def put_parsed(
        self, template: str, dialect: str, parameter_style: "ParameterStyle", parsed: "ParsedQuery"
    ) -> None:
        key = (template, dialect, parameter_style.value)
        with self._lock:
            self._entries[key] = parsed
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)
                self._stats.evictions += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stats.reset()

    def get_stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)


_template_cache: Optional[TemplateCache] = None
_cache_lock = threading.Lock()


def get_template_cache() -> TemplateCache:
    """Return the process-wide template cache."""
    global _template_cache
    if _template_cache is None:
        with _cache_lock:
            if _template_cache is None:
                _template_cache = TemplateCache()
    return _template_cache


def clear_all_caches() -> None:
    """Clear the process-wide template cache."""
    get_template_cache().clear()
    logger.debug("Template cache cleared")
