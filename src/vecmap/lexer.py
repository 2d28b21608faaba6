"""Tokenization for the formula mini-language (``~ .x * 2``)."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int


class LexError(SyntaxError):
    def __init__(self, message: str, pos: int) -> None:
        super().__init__(f"{message} at index {pos}")
        self.message = message
        self.pos = pos


_SINGLE_TOKENS = {
    "(": "LPAREN",
    ")": "RPAREN",
    ",": "COMMA",
    "$": "DOLLAR",
    "~": "TILDE",
}

# Longest spellings first.
_OPERATORS = (
    "%/%",
    "%%",
    "==",
    "!=",
    "<=",
    ">=",
    "[[",
    "]]",
    "**",
    "+",
    "-",
    "*",
    "/",
    "^",
    "<",
    ">",
    "!",
    "&",
    "|",
    "=",
)

_OP_ALIASES = {
    "**": "^",
}

_BRACKETS = {
    "[[": "LBRACK2",
    "]]": "RBRACK2",
}

_KEYWORDS = {
    "TRUE": "TRUE",
    "FALSE": "FALSE",
    "NA": "NA",
    "NULL": "NULL",
}

_NUMBER_RE = re.compile(
    r"""
    (?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)    # mantissa
    (?:[eE][+\-]?[0-9]+)?                # exponent
    (?P<integer>L)?                      # R-style integer suffix
    """,
    re.VERBOSE,
)

_PLACEHOLDER_RE = re.compile(r"\.\.(?P<index>[0-9]+)|\.(?P<name>[xy])(?![A-Za-z0-9_.])|\.(?![A-Za-z0-9_.])")


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha()


def _is_ident_continue(ch: str) -> bool:
    return ch == "_" or ch == "." or ch.isalnum()


def _parse_escaped_codepoint(source: str, start: int) -> tuple[str, int]:
    if start >= len(source):
        raise LexError("Escape sequence is incomplete at end of input", start)

    esc = source[start]
    if esc == "n":
        return "\n", start + 1
    if esc == "r":
        return "\r", start + 1
    if esc == "t":
        return "\t", start + 1
    if esc == "0":
        return "\0", start + 1
    if esc in {"\\", '"', "'"}:
        return esc, start + 1

    if esc in {"x", "u", "U"}:
        width = {"x": 2, "u": 4, "U": 8}[esc]
        hex_end = start + 1 + width
        if hex_end > len(source):
            raise LexError(f"Incomplete \\{esc} escape", start - 1)
        digits = source[start + 1 : hex_end]
        if not all(ch in "0123456789abcdefABCDEF" for ch in digits):
            raise LexError(f"Invalid \\{esc} escape", start - 1)
        try:
            return chr(int(digits, 16)), hex_end
        except ValueError as exc:
            raise LexError(f"Invalid \\{esc} escape", start - 1) from exc

    raise LexError(f"Unknown escape sequence \\{esc}", start - 1)


def _scan_string(source: str, start: int) -> tuple[str, int]:
    quote = source[start]
    assert quote in {'"', "'"}
    i = start + 1
    out: list[str] = []
    while i < len(source):
        ch = source[i]
        if ch == quote:
            return "".join(out), i + 1
        if ch == "\\":
            escaped, end = _parse_escaped_codepoint(source, i + 1)
            out.append(escaped)
            i = end
            continue
        out.append(ch)
        i += 1
    raise LexError("Unterminated string literal", start)


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0

    while i < len(source):
        ch = source[i]

        if ch in {" ", "\t", "\f", "\v", "\n", "\r"}:
            i += 1
            continue

        if ch == "#":
            while i < len(source) and source[i] not in {"\n", "\r"}:
                i += 1
            continue

        if ch == "." and not (i + 1 < len(source) and source[i + 1].isdigit()):
            m = _PLACEHOLDER_RE.match(source, i)
            if m is None:
                raise LexError("Unknown placeholder", i)
            tokens.append(Token("PLACEHOLDER", m.group(0), i, m.end()))
            i = m.end()
            continue

        if ch.isdigit() or ch == ".":
            m = _NUMBER_RE.match(source, i)
            if m is None:
                raise LexError("Invalid numeric literal", i)
            if m.end() < len(source) and _is_ident_start(source[m.end()]):
                raise LexError(f"Invalid numeric literal {source[i : m.end() + 1]!r}", i)
            kind = "INTEGER" if m.group("integer") else "NUMBER"
            text = m.group(0).rstrip("L")
            if kind == "NUMBER" and not any(c in text for c in ".eE"):
                kind = "INTEGER"
            tokens.append(Token(kind, text, i, m.end()))
            i = m.end()
            continue

        if ch in {'"', "'"}:
            value, end = _scan_string(source, i)
            tokens.append(Token("STRING", value, i, end))
            i = end
            continue

        if ch in _SINGLE_TOKENS:
            tokens.append(Token(_SINGLE_TOKENS[ch], ch, i, i + 1))
            i += 1
            continue

        op = next((candidate for candidate in _OPERATORS if source.startswith(candidate, i)), None)
        if op is not None:
            end = i + len(op)
            if op in _BRACKETS:
                tokens.append(Token(_BRACKETS[op], op, i, end))
            elif op == "=":
                tokens.append(Token("EQUALS", op, i, end))
            else:
                tokens.append(Token("OP", _OP_ALIASES.get(op, op), i, end))
            i = end
            continue

        if _is_ident_start(ch):
            start = i
            i += 1
            while i < len(source) and _is_ident_continue(source[i]):
                i += 1
            ident = source[start:i]
            tokens.append(Token(_KEYWORDS.get(ident, "NAME"), ident, start, i))
            continue

        if ch == "`":
            end = source.find("`", i + 1)
            if end < 0:
                raise LexError("Unterminated backquoted name", i)
            tokens.append(Token("NAME", source[i + 1 : end], i, end + 1))
            i = end + 1
            continue

        raise LexError(f"Unexpected character {ch!r}", i)

    tokens.append(Token("EOF", "", len(source), len(source)))
    return tokens
