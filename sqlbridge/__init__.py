"""sqlbridge: portable SQL templates over DB-API drivers."""

from sqlbridge import adapters, base, config, core, dialects, driver, exceptions, hooks, utils
from sqlbridge.__metadata__ import __version__
from sqlbridge.base import Database
from sqlbridge.config import BuiltinConfig, Config, ConnectionParams, get_current_config, set_current_config
from sqlbridge.core.compiler import ParsedQuery, TemplateCompiler, compile_template
from sqlbridge.core.parameters import BoundValue, ParameterStyle, TypeCode, infer_type_code
from sqlbridge.core.result import FetchMode, QueryResult
from sqlbridge.core.statement import PreparedStatement
from sqlbridge.dialects import DIALECTS, DialectSpec, get_dialect, native_name, quote_identifier
from sqlbridge.driver import ConnectionRegistry, TransactionTracker
from sqlbridge.driver.mixins import TransactionOutcome
from sqlbridge.exceptions import (
    DatabaseError,
    ImproperConfigurationError,
    InconsistentParametersError,
    InvalidParameterError,
    NotSupportedError,
    ObjectDoesNotExistError,
    ParameterError,
    SQLBridgeError,
    StateError,
    TemplateSyntaxError,
)
from sqlbridge.hooks import Hook

__all__ = (
    "DIALECTS",
    "BoundValue",
    "BuiltinConfig",
    "Config",
    "ConnectionParams",
    "ConnectionRegistry",
    "Database",
    "DatabaseError",
    "DialectSpec",
    "FetchMode",
    "Hook",
    "ImproperConfigurationError",
    "InconsistentParametersError",
    "InvalidParameterError",
    "NotSupportedError",
    "ObjectDoesNotExistError",
    "ParameterError",
    "ParameterStyle",
    "ParsedQuery",
    "PreparedStatement",
    "QueryResult",
    "SQLBridgeError",
    "StateError",
    "TemplateCompiler",
    "TemplateSyntaxError",
    "TransactionOutcome",
    "TransactionTracker",
    "TypeCode",
    "__version__",
    "adapters",
    "base",
    "compile_template",
    "config",
    "core",
    "dialects",
    "driver",
    "exceptions",
    "get_current_config",
    "get_dialect",
    "hooks",
    "infer_type_code",
    "native_name",
    "quote_identifier",
    "set_current_config",
    "utils",
)
