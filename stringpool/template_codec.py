"""
Conversion between parameterized text and numbered templates.

A template is the translatable form of an interpolated string: every
substitution site is replaced by "{0}", "{1}", ... in order of appearance and
the original expressions are kept aside as Placeholder records. Literal braces
are escaped by doubling them ("{{" / "}}").

    parts = parse_interpolation("Hello {user.Name,-10:N2}!")
    template, placeholders = encode_template(parts)   # "Hello {0}!"
    decode_template(template, placeholders) == parts
"""
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import (
    MalformedTemplate,
    NonContiguousIndices,
    PlaceholderCountMismatch,
    UnresolvedPlaceholder,
)
from .models import Placeholder

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_QUOTES = ("\"", "'")


@dataclass(frozen=True)
class Substitution:
    """One substitution site: the expression plus its optional alignment/format annotation."""
    expression: str
    alignment: Optional[str] = None
    format_spec: Optional[str] = None

    @property
    def source_expression(self) -> str:
        text = self.expression
        if self.alignment is not None:
            text += "," + self.alignment
        if self.format_spec is not None:
            text += ":" + self.format_spec
        return text


Part = Union[str, Substitution]


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

def _scan(template: str, strict: bool) -> Iterator[Tuple[str, Union[str, int]]]:
    """
    Yields ("text", str) and ("token", index) pieces of a template.

    In strict mode an unclosed "{" or a non-numeric "{...}" raises
    MalformedTemplate; otherwise they are passed through as text.
    """
    s = template or ""
    n = len(s)
    i = 0
    buf: List[str] = []

    while i < n:
        ch = s[i]
        if ch == "}":
            # "}}" is an escaped brace, a lone "}" is kept as-is
            buf.append("}")
            i += 2 if i + 1 < n and s[i + 1] == "}" else 1
            continue
        if ch != "{":
            buf.append(ch)
            i += 1
            continue
        if i + 1 < n and s[i + 1] == "{":
            buf.append("{")
            i += 2
            continue

        close = s.find("}", i + 1)
        if close == -1:
            if strict:
                raise MalformedTemplate(f"Unclosed placeholder at position {i}", template)
            buf.append(s[i:])
            break

        inner = s[i + 1:close]
        if inner.isdigit() and inner.isascii():
            if buf:
                yield "text", "".join(buf)
                buf = []
            yield "token", int(inner)
        elif strict:
            raise MalformedTemplate(f"Invalid placeholder '{{{inner}}}' at position {i}", template)
        else:
            buf.append(s[i:close + 1])
        i = close + 1

    if buf:
        yield "text", "".join(buf)


def split_template(text: str) -> List[Tuple[str, Union[str, int]]]:
    """Lenient split into ("text", unescaped str) / ("token", index) pieces."""
    return list(_scan(text, strict=False))


def token_indices(text: str) -> List[int]:
    """Indices of every "{N}" token in order, ignoring escaped and malformed braces."""
    return [value for kind, value in _scan(text, strict=False) if kind == "token"]


def count_tokens(text: str) -> int:
    return len(token_indices(text))


def escape_literal(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

def encode_template(parts: Iterable[Part]) -> Tuple[str, List[Placeholder]]:
    """
    Builds the numbered template and ordered placeholders for one parameterized occurrence.

    Literal parts are kept verbatim (braces escaped); each Substitution becomes
    the next "{N}" token.
    """
    out: List[str] = []
    placeholders: List[Placeholder] = []

    for part in parts:
        if isinstance(part, Substitution):
            index = len(placeholders)
            placeholder = Placeholder(index=index, expression=part.source_expression)
            placeholders.append(placeholder)
            out.append(placeholder.token)
        elif part:
            out.append(escape_literal(part))

    return "".join(out), placeholders


def decode_template(template: str, placeholders: Sequence[Placeholder]) -> List[Part]:
    """
    Splits a template back into literal runs and Substitution sites.

    Raises:
        MalformedTemplate: a "{" is never closed or encloses something other than an index.
        UnresolvedPlaceholder: a "{N}" token has no placeholder with index N.
    """
    by_index = {}
    for placeholder in placeholders:
        by_index.setdefault(placeholder.index, placeholder)

    parts: List[Part] = []
    for kind, value in _scan(template, strict=True):
        if kind == "text":
            if parts and isinstance(parts[-1], str):
                parts[-1] += value
            else:
                parts.append(value)
            continue

        placeholder = by_index.get(value)
        if placeholder is None:
            raise UnresolvedPlaceholder(
                f"Placeholder {{{value}}} has no matching expression", template, index=value
            )
        parts.append(split_expression(placeholder.expression))

    return parts


def validate_template(template: str, placeholders: Sequence[Placeholder]):
    """
    Single well-formedness check for a template and its placeholders.

    Raises:
        NonContiguousIndices: indices are not exactly {0..count-1}.
        PlaceholderCountMismatch: token count in the template differs from len(placeholders).
        UnresolvedPlaceholder: a token refers to an index with no placeholder.
    """
    indices = [p.index for p in placeholders]
    if sorted(indices) != list(range(len(indices))):
        raise NonContiguousIndices(
            "Placeholder indices are not continuous or have duplicates", template
        )

    found = token_indices(template)
    if len(found) != len(placeholders):
        raise PlaceholderCountMismatch(
            f"Placeholder count mismatch: template has {len(found)}, "
            f"but {len(placeholders)} placeholders provided",
            template,
            expected=len(placeholders),
            found=len(found),
        )

    known = set(indices)
    for index in found:
        if index not in known:
            raise UnresolvedPlaceholder(
                f"Placeholder {{{index}}} has no matching expression", template, index=index
            )


# ---------------------------------------------------------------------------
# Interpolation bodies
# ---------------------------------------------------------------------------

def split_expression(source_expression: str) -> Substitution:
    """
    Splits "expr,align:format" at the first top-level ',' / ':'.

    Commas and colons nested in brackets or quotes belong to the expression.
    """
    depth = 0
    quote = None
    comma = None
    i = 0
    n = len(source_expression)
    while i < n:
        ch = source_expression[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in (")", "]", "}"):
            depth -= 1
        elif depth == 0 and ch == "," and comma is None:
            comma = i
        elif depth == 0 and ch == ":":
            head = source_expression[:i]
            format_spec = source_expression[i + 1:]
            if comma is not None:
                return Substitution(head[:comma], head[comma + 1:], format_spec)
            return Substitution(head, None, format_spec)
        i += 1

    if comma is not None:
        return Substitution(source_expression[:comma], source_expression[comma + 1:], None)
    return Substitution(source_expression)


def parse_interpolation(body: str) -> List[Part]:
    """
    Splits an interpolated string body such as "Hi {name}, {{literal}}" into parts.

    Raises MalformedTemplate when a substitution is never closed.
    """
    parts: List[Part] = []
    buf: List[str] = []
    s = body or ""
    n = len(s)
    i = 0

    def flush():
        if buf:
            parts.append("".join(buf))
            buf.clear()

    while i < n:
        ch = s[i]
        if ch == "{" and i + 1 < n and s[i + 1] == "{":
            buf.append("{")
            i += 2
            continue
        if ch == "}":
            buf.append("}")
            i += 2 if i + 1 < n and s[i + 1] == "}" else 1
            continue
        if ch != "{":
            buf.append(ch)
            i += 1
            continue

        end = _find_substitution_end(s, i + 1)
        if end == -1:
            raise MalformedTemplate(f"Unclosed substitution at position {i}", body)
        flush()
        parts.append(split_expression(s[i + 1:end]))
        i = end + 1

    flush()
    return parts


def _find_substitution_end(s: str, start: int) -> int:
    depth = 0
    quote = None
    i = start
    n = len(s)
    while i < n:
        ch = s[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in (")", "]"):
            depth -= 1
        elif ch == "}":
            if depth == 0:
                return i
            depth -= 1
        elif ch == ":" and depth == 0:
            # format clause runs to the closing brace
            close = s.find("}", i + 1)
            return close
        i += 1
    return -1


def render_interpolation(parts: Iterable[Part]) -> str:
    """Inverse of parse_interpolation."""
    out: List[str] = []
    for part in parts:
        if isinstance(part, Substitution):
            out.append("{" + part.source_expression + "}")
        else:
            out.append(escape_literal(part))
    return "".join(out)
