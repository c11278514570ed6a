"""
Recursive-descent parser for permission rule expressions.

Grammar, lowest precedence first::

    or_expr  := and_expr (OR and_expr)*
    and_expr := unary (AND unary)*
    unary    := NOT unary | "(" or_expr ")" | check_name
    check_name := WORD+

Check names may contain spaces ("user has all access"); consecutive
words that are not keywords or parentheses form one name.
"""

import re
from typing import List, Optional, Tuple

from shared.errors import RuleParseError
from .models import AndRule, CheckRef, NotRule, OrRule, RuleNode

KEYWORDS = {
    "AND": "AND", "and": "AND",
    "OR": "OR", "or": "OR",
    "NOT": "NOT", "not": "NOT",
}

_TOKEN_RE = re.compile(r"\s*(?:(\()|(\))|([^\s()]+))")

Token = Tuple[str, str, int]  # (kind, text, position)


def tokenize(expression: str) -> List[Token]:
    """Split a rule string into LPAREN, RPAREN, keyword and WORD tokens."""
    tokens: List[Token] = []
    pos = 0
    length = len(expression)
    while pos < length:
        match = _TOKEN_RE.match(expression, pos)
        if match is None or match.end() == pos:
            break
        lparen, rparen, word = match.groups()
        if lparen:
            tokens.append(("LPAREN", lparen, match.start(1)))
        elif rparen:
            tokens.append(("RPAREN", rparen, match.start(2)))
        elif word:
            tokens.append((KEYWORDS.get(word, "WORD"), word, match.start(3)))
        pos = match.end()
    return tokens


class _Parser:

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.index = 0

    def _peek(self) -> Optional[Token]:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _error(self, message: str, token: Optional[Token] = None) -> RuleParseError:
        position = token[2] if token else len(self.expression)
        return RuleParseError(self.expression, message, position)

    def parse(self) -> RuleNode:
        if not self.tokens:
            raise self._error("empty expression")
        node = self._or_expr()
        token = self._peek()
        if token is not None:
            raise self._error(f"unexpected '{token[1]}'", token)
        return node

    def _or_expr(self) -> RuleNode:
        node = self._and_expr()
        while self._peek() and self._peek()[0] == "OR":
            self.index += 1
            node = OrRule(node, self._and_expr())
        return node

    def _and_expr(self) -> RuleNode:
        node = self._unary()
        while self._peek() and self._peek()[0] == "AND":
            self.index += 1
            node = AndRule(node, self._unary())
        return node

    def _unary(self) -> RuleNode:
        token = self._peek()
        if token is None:
            raise self._error("unexpected end of expression")

        kind = token[0]
        if kind == "NOT":
            self.index += 1
            return NotRule(self._unary())

        if kind == "LPAREN":
            self.index += 1
            node = self._or_expr()
            closing = self._peek()
            if closing is None or closing[0] != "RPAREN":
                raise self._error("missing ')'", closing)
            self.index += 1
            return node

        if kind == "WORD":
            words = []
            while self._peek() and self._peek()[0] == "WORD":
                words.append(self._peek()[1])
                self.index += 1
            return CheckRef(" ".join(words))

        raise self._error(f"unexpected '{token[1]}'", token)


def parse_expression(expression: str) -> RuleNode:
    """Parse a rule string into a rule AST.

    Raises:
        RuleParseError: if the expression is empty or malformed.
    """
    if expression is None:
        raise RuleParseError("", "expression is None")
    return _Parser(expression).parse()
