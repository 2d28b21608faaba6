"""Pratt parser for the formula mini-language."""

from __future__ import annotations

from dataclasses import dataclass

from .ast import Argument, Call, Expr, Formula, Index, Infix, Logical, Member, Missing, Name, Null, Number, Placeholder, Prefix, String
from .lexer import LexError, Token, tokenize

# (left binding power, right binding power); right < left means right-associative.
_INFIX_BINDING_POWER = {
    "|": (10, 11),
    "&": (20, 21),
    "==": (40, 41),
    "!=": (40, 41),
    "<": (40, 41),
    "<=": (40, 41),
    ">": (40, 41),
    ">=": (40, 41),
    "+": (50, 51),
    "-": (50, 51),
    "*": (60, 61),
    "/": (60, 61),
    "%%": (65, 66),
    "%/%": (65, 66),
    "^": (80, 79),
}
_PREFIX_BINDING_POWER = {
    "!": 30,
    "-": 70,
    "+": 70,
}
_POSTFIX_BINDING_POWER = 90

_PLACEHOLDER_INDEX = {
    ".": 0,
    ".x": 0,
    ".y": 1,
}

_EXPR_START = ("NUMBER", "INTEGER", "STRING", "TRUE", "FALSE", "NA", "NULL", "PLACEHOLDER", "NAME", "LPAREN", "OP")


def describe_span(message: str, start: int, end: int, expected: tuple[str, ...] = (), found: str | None = None) -> str:
    """``message at span [start, end)`` plus the expected and found tokens when known."""
    parts = [f"{message} at span [{start}, {end})"]
    if expected:
        parts.append(f"expected {', '.join(expected)}")
    if found is not None:
        parts.append(f"found {found}")
    return "; ".join(parts)


class ParseError(SyntaxError):
    """Formula text that does not parse; ``start``/``end`` index into the source."""

    def __init__(self, message: str, start: int, end: int, expected: tuple[str, ...] = (), found: str | None = None) -> None:
        super().__init__(message)
        self.message, self.start, self.end = message, start, end
        self.expected = expected
        self.found = found

    def __str__(self) -> str:
        return describe_span(self.message, self.start, self.end, self.expected, self.found)


def _found(token: Token) -> str:
    if token.kind == "EOF" or not token.text:
        return token.kind
    return f"{token.kind}({token.text})"


@dataclass
class _Parser:
    tokens: list[Token]
    index: int = 0

    def parse_formula(self) -> Formula:
        self._expect("TILDE")
        body = self._parse_expression(0)
        self._expect("EOF")
        return Formula(body=body)

    def parse_expression_only(self) -> Expr:
        expr = self._parse_expression(0)
        self._expect("EOF")
        return expr

    def _peek(self, offset: int = 0) -> Token:
        # The token list always ends with EOF; looking past it keeps returning EOF.
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def _peek_next(self) -> Token:
        return self._peek(1)

    def _advance(self) -> Token:
        current = self._peek()
        self.index += 1
        return current

    def _expect(self, kind: str) -> Token:
        if self._peek().kind != kind:
            self._error(expected=(kind,))
        return self._advance()

    def _error(self, tok: Token | None = None, *, message: str | None = None, expected: tuple[str, ...] = ()) -> None:
        token = self._peek() if tok is None else tok
        raise ParseError(
            message or "Unexpected token",
            token.pos,
            token.end,
            expected=tuple(dict.fromkeys(expected)),
            found=_found(token),
        )

    def _parse_expression(self, min_bp: int) -> Expr:
        left = self._parse_prefix()

        while True:
            tok = self._peek()

            if tok.kind == "DOLLAR" and _POSTFIX_BINDING_POWER >= min_bp:
                self._advance()
                attr = self._peek()
                if attr.kind not in {"NAME", "STRING"}:
                    self._error(attr, message="Expected field name after $", expected=("NAME", "STRING"))
                self._advance()
                left = Member(value=left, attr=attr.text)
                continue

            if tok.kind == "LBRACK2" and _POSTFIX_BINDING_POWER >= min_bp:
                self._advance()
                index = self._parse_expression(0)
                self._expect("RBRACK2")
                left = Index(value=left, index=index)
                continue

            if tok.kind != "OP":
                break
            if tok.text not in _INFIX_BINDING_POWER:
                self._error(tok, message=f"Operator {tok.text!r} cannot be used between operands")
            lbp, rbp = _INFIX_BINDING_POWER[tok.text]
            if lbp < min_bp:
                break
            self._advance()
            right = self._parse_expression(rbp)
            left = Infix(op=tok.text, left=left, right=right)

        return left

    def _parse_prefix(self) -> Expr:
        tok = self._peek()

        if tok.kind == "NUMBER":
            self._advance()
            return Number(float(tok.text))

        if tok.kind == "INTEGER":
            self._advance()
            return Number(int(tok.text))

        if tok.kind == "STRING":
            self._advance()
            return String(tok.text)

        if tok.kind in {"TRUE", "FALSE"}:
            self._advance()
            return Logical(tok.kind == "TRUE")

        if tok.kind == "NA":
            self._advance()
            return Missing()

        if tok.kind == "NULL":
            self._advance()
            return Null()

        if tok.kind == "PLACEHOLDER":
            self._advance()
            return self._placeholder(tok)

        if tok.kind == "NAME":
            self._advance()
            if self._peek().kind == "LPAREN":
                return Call(func=tok.text, args=self._parse_arguments())
            return Name(tok.text)

        if tok.kind == "LPAREN":
            self._advance()
            expr = self._parse_expression(0)
            self._expect("RPAREN")
            return expr

        if tok.kind == "OP" and tok.text in _PREFIX_BINDING_POWER:
            self._advance()
            right = self._parse_expression(_PREFIX_BINDING_POWER[tok.text])
            return Prefix(op=tok.text, right=right)

        self._error(tok, message="Expected an expression", expected=_EXPR_START)
        raise AssertionError("unreachable")

    def _placeholder(self, tok: Token) -> Placeholder:
        if tok.text in _PLACEHOLDER_INDEX:
            return Placeholder(index=_PLACEHOLDER_INDEX[tok.text], spelling=tok.text)
        position = int(tok.text[2:])
        if position < 1:
            self._error(tok, message="Positional placeholders start at ..1")
        return Placeholder(index=position - 1, spelling=tok.text)

    def _parse_arguments(self) -> tuple[Argument, ...]:
        self._expect("LPAREN")
        args: list[Argument] = []
        if self._peek().kind == "RPAREN":
            self._advance()
            return ()

        while True:
            name = None
            if self._peek().kind in {"NAME", "STRING"} and self._peek_next().kind == "EQUALS":
                name = self._advance().text
                self._advance()
            args.append(Argument(value=self._parse_expression(0), name=name))

            tok = self._peek()
            if tok.kind == "COMMA":
                self._advance()
                continue
            if tok.kind == "RPAREN":
                self._advance()
                return tuple(args)
            self._error(tok, expected=("COMMA", "RPAREN"))


def _tokenize(source: str) -> list[Token]:
    try:
        return tokenize(source)
    except LexError as exc:
        raise ParseError(exc.message, exc.pos, exc.pos + 1) from exc


def parse(source: str) -> Expr:
    tokens = _tokenize(source)
    parser = _Parser(tokens=tokens)
    return parser.parse_expression_only()


def parse_formula(source: str) -> Formula:
    tokens = _tokenize(source)
    parser = _Parser(tokens=tokens)
    return parser.parse_formula()
