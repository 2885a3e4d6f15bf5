"""Template processing core.

- parameters.py: value kinds, native marker styles and positional binding
- cache.py: thread-safe LRU cache of compiled templates
- type_conversion.py: fetch-side column coercion
- result.py: query results and fetch modes
- statement.py: prepared statements
- compiler.py: template compiler (import it from :mod:`sqlbridge.core.compiler`)
"""

from sqlbridge.core.cache import CacheStats, TemplateCache, clear_all_caches, get_template_cache
from sqlbridge.core.parameters import (
    BoundValue,
    ParameterStyle,
    TypeCode,
    bind_parameters,
    coerce_parameter,
    infer_type_code,
    placeholder_for,
)
from sqlbridge.core.result import FetchMode, QueryResult
from sqlbridge.core.statement import PreparedStatement
from sqlbridge.core.type_conversion import convert_column, convert_decimal, stringify_value

__all__ = (
    "BoundValue",
    "CacheStats",
    "FetchMode",
    "ParameterStyle",
    "PreparedStatement",
    "QueryResult",
    "TemplateCache",
    "TypeCode",
    "bind_parameters",
    "clear_all_caches",
    "coerce_parameter",
    "convert_column",
    "convert_decimal",
    "get_template_cache",
    "infer_type_code",
    "placeholder_for",
    "stringify_value",
)
