from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, ClassVar, Optional

__all__ = (
    "DatabaseError",
    "ExtraParameterError",
    "ImproperConfigurationError",
    "InconsistentParametersError",
    "InvalidParameterError",
    "MissingDependencyError",
    "MissingParameterError",
    "NotFoundError",
    "NotSupportedError",
    "ObjectDoesNotExistError",
    "ParameterError",
    "RepositoryError",
    "SQLBridgeError",
    "SerializationError",
    "StateError",
    "TemplateSyntaxError",
    "wrap_database_errors",
)


class SQLBridgeError(Exception):
    """Base exception class from which all sqlbridge exceptions inherit."""

    status: ClassVar[str] = "INTERNAL_ERROR"
    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLBridgeError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(SQLBridgeError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a dialect needs a driver package that has not been installed.
    """

    status = "CONFIGURATION_ERROR"

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install sqlbridge[{install_package or package}]' to install sqlbridge with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


# -- Caller input errors --
class InvalidParameterError(SQLBridgeError):
    """Malformed caller input: unknown option, bad column name, bad template."""

    status = "INVALID_PARAMETER"


class ImproperConfigurationError(InvalidParameterError):
    """Invalid connection configuration.

    Raised for unsupported dialects, missing connection fields and unknown
    driver options, always before any network activity.
    """


class InconsistentParametersError(InvalidParameterError):
    """Mutually exclusive options were supplied together."""

    status = "INCONSISTENT_PARAMETERS"


class TemplateSyntaxError(InvalidParameterError):
    """A SQL template could not be parsed."""

    template: Optional[str]
    position: Optional[int]

    def __init__(self, message: str, template: Optional[str] = None, position: Optional[int] = None) -> None:
        """Initialize with the offending template and character offset."""
        detail_message = message
        if position is not None:
            detail_message = f"{message} at offset {position}"
        if template:
            detail_message = f"{detail_message}\nSQL: {template}"
        super().__init__(detail=detail_message)
        self.template = template
        self.position = position


class ParameterError(InvalidParameterError):
    """Base class for parameter-related errors."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class MissingParameterError(ParameterError):
    """Raised when fewer values than placeholders are supplied."""


class ExtraParameterError(ParameterError):
    """Raised when more values than placeholders are supplied."""


# -- State errors --
class StateError(SQLBridgeError):
    """An operation is not valid in the current state, e.g. a nested transaction on a non-nestable instance."""

    status = "STATE_ERROR"


class NotSupportedError(SQLBridgeError):
    """The requested operation is not available for the connection's dialect."""

    status = "NOT_SUPPORTED"


# -- Native driver errors --
class DatabaseError(SQLBridgeError):
    """A native driver operation failed.

    The native exception is chained as ``__cause__`` and exposed as :attr:`inner`.
    """

    status = "DATABASE_ERROR"

    @property
    def inner(self) -> Optional[BaseException]:
        """The wrapped native driver exception, if any."""
        return self.__cause__


class SerializationError(SQLBridgeError):
    """Encoding or decoding of an object failed."""


class RepositoryError(SQLBridgeError):
    """Base repository exception type."""


class NotFoundError(RepositoryError):
    """An identity does not exist."""

    status = "OBJECT_DOES_NOT_EXIST"


class ObjectDoesNotExistError(NotFoundError):
    """An update targeted zero existing rows."""


@contextmanager
def wrap_database_errors(
    detail: str, errors: "tuple[type[BaseException], ...]" = (Exception,)
) -> Generator[None, None, None]:
    """Re-raise native driver errors as :class:`DatabaseError`.

    Args:
        detail: Message describing the operation that failed.
        errors: The driver's exception classes to convert.
    """
    try:
        yield
    except SQLBridgeError:
        raise
    except errors as exc:
        raise DatabaseError(detail=f"{detail}: {exc}") from exc
