"""Connection parameters and project configuration.

Connection parameters come either from the caller or from the current
project configuration, whose ``db.*`` properties name the dialect and the
connection fields:

    db.dbms, db.host, db.port, db.username, db.password, db.database,
    db.options.<driver option>
"""

import os
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Protocol, TypedDict, runtime_checkable

from typing_extensions import NotRequired

from sqlbridge.dialects import get_dialect
from sqlbridge.exceptions import ImproperConfigurationError, InvalidParameterError

if TYPE_CHECKING:
    from sqlbridge.dialects import DialectSpec

__all__ = (
    "BuiltinConfig",
    "Config",
    "ConnectionParams",
    "ConnectionParamsDict",
    "ProjectConfig",
    "get_current_config",
    "set_current_config",
)

DB_PREFIX = "db."
OPTIONS_PREFIX = "db.options."
_CONNECTION_FIELDS = ("dbms", "host", "port", "username", "password", "database")


class ConnectionParamsDict(TypedDict, total=False):
    """Keyword form of :class:`ConnectionParams`."""

    dbms: str
    database: str
    host: NotRequired["str | None"]
    port: NotRequired["int | str | None"]
    username: NotRequired["str | None"]
    password: NotRequired["str | None"]
    options: NotRequired["Mapping[str, Any]"]


@runtime_checkable
class ProjectConfig(Protocol):
    """Read-only view of a project configuration."""

    def property_names(self) -> "Iterable[str]":
        """Names of all defined properties."""
        ...

    def get_property(self, name: str, default: Any = None) -> Any:
        """Value of property ``name``, or ``default``."""
        ...


class Config:
    """Project configuration backed by a mapping of property names to values."""

    __slots__ = ("_properties",)

    def __init__(self, properties: "Optional[Mapping[str, Any]]" = None) -> None:
        self._properties: dict[str, Any] = dict(properties or {})

    def property_names(self) -> "list[str]":
        return list(self._properties)

    def get_property(self, name: str, default: Any = None) -> Any:
        return self._properties.get(name, default)

    def has_property(self, name: str) -> bool:
        return name in self._properties

    def __repr__(self) -> str:
        names = sorted(self._properties)
        return f"{type(self).__name__}({names!r})"


class BuiltinConfig(Config):
    """The default configuration.

    Its connection cache fingerprint is always the empty string. Properties
    are read from ``SQLBRIDGE_DB_*`` environment variables:
    ``SQLBRIDGE_DB_HOST`` becomes ``db.host`` and
    ``SQLBRIDGE_DB_OPTIONS_TIMEOUT`` becomes ``db.options.timeout``.
    """

    __slots__ = ()

    ENV_PREFIX: ClassVar[str] = "SQLBRIDGE_DB_"

    @classmethod
    def from_env(cls, environ: "Optional[Mapping[str, str]]" = None) -> "BuiltinConfig":
        environ = os.environ if environ is None else environ
        properties: dict[str, Any] = {}
        for key, value in environ.items():
            if not key.startswith(cls.ENV_PREFIX):
                continue
            suffix = key[len(cls.ENV_PREFIX) :].lower()
            if suffix.startswith("options_"):
                properties[OPTIONS_PREFIX + suffix[len("options_") :]] = value
            else:
                properties[DB_PREFIX + suffix] = value
        return cls(properties)


_current_config: Optional[ProjectConfig] = None
_config_lock = threading.Lock()


def get_current_config() -> ProjectConfig:
    """Return the configuration of the running project.

    Defaults to :meth:`BuiltinConfig.from_env` until :func:`set_current_config` is called.
    """
    global _current_config
    if _current_config is None:
        with _config_lock:
            if _current_config is None:
                _current_config = BuiltinConfig.from_env()
    return _current_config


def set_current_config(config: Optional[ProjectConfig]) -> None:
    """Replace the current configuration; None restores the builtin default."""
    global _current_config
    with _config_lock:
        _current_config = config


def _normalize_port(port: Any) -> Optional[int]:
    if port is None or port == "":
        return None
    if isinstance(port, bool):
        msg = f"Invalid port: {port!r}"
        raise ImproperConfigurationError(msg)
    try:
        return int(port)
    except (TypeError, ValueError) as e:
        msg = f"Invalid port: {port!r}"
        raise ImproperConfigurationError(msg) from e


@dataclass(frozen=True)
class ConnectionParams:
    """Immutable connection parameters.

    Raises:
        ImproperConfigurationError: The dialect is unsupported or a required
            field is missing.
    """

    dbms: str
    database: str
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    options: "Mapping[str, Any]" = field(default_factory=dict)

    def __post_init__(self) -> None:
        spec = get_dialect(self.dbms)
        if not self.database:
            msg = "Missing connection parameter: database"
            raise ImproperConfigurationError(msg)
        if spec.requires_host and not self.host:
            msg = f"Missing connection parameter: host (required for {spec.name})"
            raise ImproperConfigurationError(msg)
        object.__setattr__(self, "port", _normalize_port(self.port))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @property
    def dialect(self) -> "DialectSpec":
        return get_dialect(self.dbms)

    @classmethod
    def from_config(cls, config: ProjectConfig) -> "ConnectionParams":
        """Build parameters from the ``db.*`` properties of ``config``."""
        values: dict[str, Any] = {}
        for name in _CONNECTION_FIELDS:
            value = config.get_property(DB_PREFIX + name)
            if value is not None:
                values[name] = value
        if "dbms" not in values:
            msg = "Missing configuration property: db.dbms"
            raise ImproperConfigurationError(msg)
        if "database" not in values:
            msg = "Missing configuration property: db.database"
            raise ImproperConfigurationError(msg)
        options = {
            name[len(OPTIONS_PREFIX) :]: config.get_property(name)
            for name in config.property_names()
            if name.startswith(OPTIONS_PREFIX)
        }
        return cls(options=options, **values)

    @classmethod
    def from_mapping(cls, mapping: "Mapping[str, Any]") -> "ConnectionParams":
        """Build parameters from the keyword form, ignoring None values.

        Raises:
            InvalidParameterError: A key is not a connection parameter.
            ImproperConfigurationError: ``dbms`` or another required field is missing.
        """
        for name in mapping:
            if name not in _PARAMETER_KEYS:
                msg = f"Unsupported option: {name}"
                raise InvalidParameterError(msg)
        values = {name: value for name, value in mapping.items() if value is not None}
        if "dbms" not in values:
            msg = "Missing connection parameter: dbms"
            raise ImproperConfigurationError(msg)
        values.setdefault("database", "")
        return cls(**values)


_PARAMETER_KEYS: "frozenset[str]" = frozenset(ConnectionParamsDict.__annotations__)
