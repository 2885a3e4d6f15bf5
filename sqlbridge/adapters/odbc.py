"""ODBC adapter built on pyodbc."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from sqlbridge.adapters.base import AutocommitToggleMixin, DriverAdapter

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams

__all__ = ("OdbcAdapter", "build_connection_string")


def _odbc_value(value: Any) -> str:
    text = str(value)
    if any(c in text for c in ";{}=") or text != text.strip():
        return "{" + text.replace("}", "}}") + "}"
    return text


def build_connection_string(params: "ConnectionParams", options: "Mapping[str, Any]") -> str:
    """Assemble an ODBC connection string.

    ``driver`` and ``dsn`` options select the ODBC driver or data source;
    ``encrypt`` and ``trust_server_certificate`` map to their keywords.
    """
    parts: list[tuple[str, Optional[Any]]] = [
        ("DRIVER", options.get("driver")),
        ("DSN", options.get("dsn")),
        ("SERVER", f"{params.host},{params.port}" if params.port else params.host),
        ("DATABASE", params.database),
        ("UID", params.username),
        ("PWD", params.password),
    ]
    if "encrypt" in options:
        parts.append(("Encrypt", "yes" if options["encrypt"] else "no"))
    if "trust_server_certificate" in options:
        parts.append(("TrustServerCertificate", "yes" if options["trust_server_certificate"] else "no"))
    return ";".join(f"{key}={_odbc_value(value)}" for key, value in parts if value is not None)


class OdbcAdapter(AutocommitToggleMixin, DriverAdapter):
    __slots__ = ()

    driver_module = "pyodbc"
    install_package = "odbc"
    connect_options = frozenset({"driver", "dsn", "encrypt", "timeout", "trust_server_certificate"})
    last_insert_id_sql = "SELECT @@IDENTITY"

    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        kwargs: dict[str, Any] = {"autocommit": True}
        if "timeout" in options:
            kwargs["timeout"] = options["timeout"]
        return kwargs

    def connect(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> Any:
        return self.module.connect(build_connection_string(params, options), **self.build_connect_kwargs(params, options))
