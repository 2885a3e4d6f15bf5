"""SQL template compiler.

Translates dialect-neutral templates into native SQL in a single
left-to-right scan:

- ``[name]`` becomes the dialect's quoted identifier
- ``%i %f %d %s %b`` become native parameter markers
- ``{i} {f} {d} {s} {b}`` after a select-list expression declare the
  expected type of that result column and emit nothing

String literals, double-quoted identifiers and comments are copied through
untouched. For ``%s``-style drivers every literal ``%`` is doubled.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Optional

from mypy_extensions import mypyc_attr

from sqlbridge.core.cache import TemplateCache, get_template_cache
from sqlbridge.core.parameters import ParameterStyle, TypeCode
from sqlbridge.dialects import get_dialect
from sqlbridge.exceptions import TemplateSyntaxError

if TYPE_CHECKING:
    from sqlbridge.dialects import DialectSpec

__all__ = ("ParsedQuery", "TemplateCompiler", "compile_template", "get_compiler")


_TEMPLATE_REGEX: Final = re.compile(
    r"""
    (?P<squote>'(?:[^']|'')*') |
    (?P<squote_open>') |
    (?P<dquote>"[^"]*") |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    (?P<identifier>\[(?P<identifier_name>[^\]]*)\]) |
    (?P<identifier_open>\[) |
    (?P<placeholder>%(?P<placeholder_code>[ifdsb])) |
    (?P<percent>%) |
    (?P<annotation>\{(?P<annotation_code>[ifdsb])\}) |
    (?P<brace_open>\{) |
    (?P<paren_open>\() |
    (?P<paren_close>\)) |
    (?P<comma>,) |
    (?P<select>\b(?i:select)\b)
    """,
    re.VERBOSE,
)

_VERBATIM_GROUPS: Final = frozenset({"squote", "dquote", "line_comment", "block_comment"})


@dataclass(frozen=True)
class ParsedQuery:
    """Result of compiling a template for one dialect.

    Attributes:
        sql: Native SQL text
        placeholders: Placeholder kinds in template order
        column_types: Expected kind per result column; None where undeclared
    """

    sql: str
    placeholders: "tuple[TypeCode, ...]"
    column_types: "tuple[Optional[TypeCode], ...]"

    @property
    def parameter_count(self) -> int:
        return len(self.placeholders)

    def column_type(self, index: int) -> Optional[TypeCode]:
        """Return the declared type of result column ``index``, if any."""
        if 0 <= index < len(self.column_types):
            return self.column_types[index]
        return None


def _parse(template: str, dialect: "DialectSpec", style: ParameterStyle) -> ParsedQuery:
    out: list[str] = []
    placeholders: list[TypeCode] = []
    column_types: dict[int, TypeCode] = {}
    escape_percent = style.escapes_percent
    depth = 0
    column = 0
    position = 0

    for match in _TEMPLATE_REGEX.finditer(template):
        out.append(template[position : match.start()])
        position = match.end()
        kind = match.lastgroup
        text = match.group()

        if kind in _VERBATIM_GROUPS:
            out.append(text.replace("%", "%%") if escape_percent else text)
        elif kind == "identifier":
            name = match.group("identifier_name")
            if "[" in name and dialect.quote_begin == "[":
                msg = "Nested '[' in bracket-quoted identifier"
                raise TemplateSyntaxError(msg, template, match.start())
            quoted = dialect.quote_identifier(name)
            out.append(quoted.replace("%", "%%") if escape_percent else quoted)
        elif kind == "placeholder":
            out.append(style.marker(len(placeholders)))
            placeholders.append(TypeCode(match.group("placeholder_code")))
        elif kind == "percent":
            out.append("%%" if escape_percent else "%")
        elif kind == "annotation":
            if depth != 0:
                msg = "Column type annotation inside parentheses"
                raise TemplateSyntaxError(msg, template, match.start())
            column_types[column] = TypeCode(match.group("annotation_code"))
        elif kind == "paren_open":
            depth += 1
            out.append(text)
        elif kind == "paren_close":
            depth = max(depth - 1, 0)
            out.append(text)
        elif kind == "comma":
            if depth == 0:
                column += 1
            out.append(text)
        elif kind == "select":
            if depth == 0:
                column = 0
            out.append(text)
        elif kind == "squote_open":
            msg = "Unterminated string literal"
            raise TemplateSyntaxError(msg, template, match.start())
        elif kind == "identifier_open":
            msg = "Unterminated identifier bracket"
            raise TemplateSyntaxError(msg, template, match.start())
        else:
            msg = "Invalid column type annotation; expected one of {i}, {f}, {d}, {s}, {b}"
            raise TemplateSyntaxError(msg, template, match.start())

    out.append(template[position:])
    width = max(column_types) + 1 if column_types else 0
    return ParsedQuery(
        sql="".join(out),
        placeholders=tuple(placeholders),
        column_types=tuple(column_types.get(i) for i in range(width)),
    )


@mypyc_attr(allow_interpreted_subclasses=False)
class TemplateCompiler:
    """Compiles templates, memoizing results in a :class:`TemplateCache`."""

    __slots__ = ("_cache",)

    def __init__(self, cache: Optional[TemplateCache] = None) -> None:
        self._cache = cache if cache is not None else get_template_cache()

    def compile(
        self, template: str, dialect: "str | DialectSpec", parameter_style: Optional[ParameterStyle] = None
    ) -> ParsedQuery:
        """Compile ``template`` for ``dialect``.

        Args:
            template: Dialect-neutral SQL template
            dialect: Dialect name or spec
            parameter_style: Override of the dialect's native marker style

        Raises:
            TemplateSyntaxError: The template is malformed.
            ImproperConfigurationError: The dialect is not supported.

        Returns:
            The parsed query.
        """
        spec = get_dialect(dialect)
        style = parameter_style or spec.parameter_style
        parsed = self._cache.get_parsed(template, spec.name, style)
        if parsed is None:
            parsed = _parse(template, spec, style)
            self._cache.put_parsed(template, spec.name, style, parsed)
        return parsed


_default_compiler: Optional[TemplateCompiler] = None


def get_compiler() -> TemplateCompiler:
    """Return the compiler backed by the process-wide template cache."""
    global _default_compiler
    if _default_compiler is None:
        _default_compiler = TemplateCompiler()
    return _default_compiler


def compile_template(
    template: str, dialect: "str | DialectSpec", parameter_style: Optional[ParameterStyle] = None
) -> ParsedQuery:
    """Compile ``template`` for ``dialect`` with the default compiler."""
    return get_compiler().compile(template, dialect, parameter_style)
