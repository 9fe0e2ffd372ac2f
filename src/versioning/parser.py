"""Tokenizer and recursive-descent parser for version requirement strings.

Grammar (negation binds tighter than ``&``, which binds tighter than ``|``)::

    expr    := and_expr ( OR and_expr )*
    and_expr:= unary ( AND? unary )*      # missing connective means AND
    unary   := NOT unary | primary
    primary := '(' expr ')' | COMPARATOR? VERSION
"""

import re
from typing import List, NamedTuple, Optional, Union

from exceptions import ParseError
from .models import COMPARATORS, Clause, VersionRequirement, is_version

_INVALID_CHARS = re.compile(r"[^\s()|&!=<>~\w.\-]+")
_REQUIREMENT_CHARS = re.compile(r"[|&!=<>~()]")
_WORD = re.compile(r"[\w.\-]+")
# Longest comparators first so ">=" is not read as ">" followed by "=".
_COMPARATOR_TOKENS = sorted(COMPARATORS, key=len, reverse=True)
_KEYWORDS = {"and": "AND", "or": "OR", "not": "NOT"}

LPAREN, RPAREN, AND, OR, NOT, CMP, WORD = "LPAREN", "RPAREN", "AND", "OR", "NOT", "CMP", "WORD"


class Token(NamedTuple):
    """A lexical token with its offset in the source string."""
    kind: str
    text: str
    pos: int


def is_requirement(text: Optional[str]) -> bool:
    """Return True when ``text`` holds comparator, boolean or paren characters."""
    return isinstance(text, str) and _REQUIREMENT_CHARS.search(text) is not None


def tokenize(text: str) -> List[Token]:
    """Split a requirement string into tokens, rejecting foreign characters."""
    invalid = _INVALID_CHARS.search(text)
    if invalid:
        raise ParseError(
            f"version string {text!r} contains invalid characters: {invalid.group(0)!r}",
            text,
        )
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        char = text[pos]
        if char.isspace():
            pos += 1
        elif char == "(":
            tokens.append(Token(LPAREN, char, pos))
            pos += 1
        elif char == ")":
            tokens.append(Token(RPAREN, char, pos))
            pos += 1
        elif char in "&|":
            width = 2 if text.startswith(char * 2, pos) else 1
            tokens.append(Token(AND if char == "&" else OR, text[pos:pos + width], pos))
            pos += width
        elif char == "!" and not text.startswith("!=", pos):
            tokens.append(Token(NOT, char, pos))
            pos += 1
        elif char in "!=<>~":
            comparator = next((c for c in _COMPARATOR_TOKENS if text.startswith(c, pos)), None)
            if comparator is None:
                raise ParseError(f"Invalid comparator in {text!r} at {text[pos:]!r}", text)
            tokens.append(Token(CMP, comparator, pos))
            pos += len(comparator)
        else:
            word = _WORD.match(text, pos).group(0)
            tokens.append(Token(_KEYWORDS.get(word.lower(), WORD), word, pos))
            pos += len(word)
    return tokens


class _Parser:
    """Single-use parser over a token list."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def fail(self, message: str, token: Optional[Token]) -> ParseError:
        where = self.text[token.pos:] if token else "end of input"
        return ParseError(f"Failed to parse {self.text!r}: {message} at {where!r}", self.text)

    def parse(self) -> VersionRequirement:
        if not self.tokens:
            raise ParseError(f"Empty version requirement {self.text!r}", self.text)
        node = self.parse_or()
        if self.peek() is not None:
            raise self.fail("unexpected token", self.peek())
        return _as_requirement(node)

    def parse_or(self) -> Union[Clause, VersionRequirement]:
        nodes = [self.parse_and()]
        while self.peek() is not None and self.peek().kind == OR:
            self.advance()
            nodes.append(self.parse_and())
        return nodes[0] if len(nodes) == 1 else VersionRequirement("|", tuple(nodes))

    def parse_and(self) -> Union[Clause, VersionRequirement]:
        nodes = [self.parse_unary()]
        while self.peek() is not None:
            kind = self.peek().kind
            if kind == AND:
                self.advance()
            elif kind not in (NOT, LPAREN, CMP, WORD):
                break
            nodes.append(self.parse_unary())
        return nodes[0] if len(nodes) == 1 else VersionRequirement("&", tuple(nodes))

    def parse_unary(self) -> Union[Clause, VersionRequirement]:
        token = self.peek()
        if token is not None and token.kind == NOT:
            self.advance()
            return _as_requirement(self.parse_unary()).negate()
        return self.parse_primary()

    def parse_primary(self) -> Union[Clause, VersionRequirement]:
        token = self.peek()
        if token is None:
            raise self.fail("expected a version", None)
        if token.kind == LPAREN:
            self.advance()
            node = self.parse_or()
            closing = self.peek()
            if closing is None or closing.kind != RPAREN:
                raise self.fail("missing closing parenthesis", closing)
            self.advance()
            return node
        comparator = None
        if token.kind == CMP:
            comparator = self.advance().text
            token = self.peek()
        if token is None or token.kind != WORD:
            raise self.fail("invalid requirement clause", token)
        if not is_version(token.text):
            raise self.fail(f"invalid version {token.text!r}", token)
        self.advance()
        return Clause(comparator, token.text)


def _as_requirement(node: Union[Clause, VersionRequirement]) -> VersionRequirement:
    if isinstance(node, Clause):
        return VersionRequirement(None, (node,))
    return node


def parse_requirement(text: str) -> VersionRequirement:
    """Parse a requirement string such as ``>1.2 <1.3 | ~>2.0`` into a tree.

    Raises:
        ParseError: on non-string input, invalid characters or malformed clauses.
    """
    if not isinstance(text, str):
        raise ParseError(f"Expecting a version requirement string, found {text!r}")
    return _Parser(text.strip()).parse()
