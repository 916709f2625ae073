"""Freeform condition expressions: tokenizer, recursive-descent parser, evaluator.

Grammar (lowest to highest precedence)::

    expression := or_expr
    or_expr    := and_expr ("||" and_expr)*
    and_expr   := unary ("&&" unary)*
    unary      := "!" unary | comparison
    comparison := operand (COMPARATOR operand)?
    operand    := NUMBER | STRING | true | false | null | PATH | "(" expression ")"

COMPARATOR is one of == != > < >= <= contains. PATH is a dotted lookup into
the run context (lead.score). Nothing else is accepted: there are no calls,
attribute access beyond dict keys, or arithmetic, and the host interpreter
is never invoked on user text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from autoflow.application.services.condition_operators import compare, resolve_path
from autoflow.domain.enums import ConditionOperator
from autoflow.domain.exceptions import ConditionSyntaxError

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<number>-?\d+(?:\.\d+)?)
    |(?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    |(?P<op>&&|\|\||==|!=|>=|<=|>|<|!|\(|\))
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)
    """,
    re.VERBOSE,
)

_COMPARATORS: dict[str, ConditionOperator] = {
    "==": ConditionOperator.EQ,
    "!=": ConditionOperator.NEQ,
    ">": ConditionOperator.GT,
    "<": ConditionOperator.LT,
    ">=": ConditionOperator.GTE,
    "<=": ConditionOperator.LTE,
    "contains": ConditionOperator.CONTAINS,
}

_KEYWORDS: dict[str, Any] = {"true": True, "false": False, "null": None}

_MAX_EXPRESSION_LENGTH = 2000
_MAX_NESTING = 32


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens; raise ConditionSyntaxError on stray characters."""
    tokens: list[Token] = []
    position = 0
    while position < len(expression):
        match = _TOKEN_RE.match(expression, position)
        if match is None:
            raise ConditionSyntaxError(
                expression, f"unexpected character {expression[position]!r}", position
            )
        kind = match.lastgroup or ""
        if kind != "ws":
            tokens.append(Token(kind, match.group(), position))
        position = match.end()
    return tokens


# ---- AST ----


@dataclass(frozen=True)
class Literal:
    value: Any

    def evaluate(self, data: dict[str, Any]) -> Any:
        return self.value


@dataclass(frozen=True)
class Path:
    path: str

    def evaluate(self, data: dict[str, Any]) -> Any:
        return resolve_path(data, self.path)


@dataclass(frozen=True)
class Comparison:
    left: Any
    operator: ConditionOperator
    right: Any

    def evaluate(self, data: dict[str, Any]) -> bool:
        return compare(self.left.evaluate(data), self.operator, self.right.evaluate(data))


@dataclass(frozen=True)
class Not:
    operand: Any

    def evaluate(self, data: dict[str, Any]) -> bool:
        return not _truthy(self.operand.evaluate(data))


@dataclass(frozen=True)
class And:
    left: Any
    right: Any

    def evaluate(self, data: dict[str, Any]) -> bool:
        return _truthy(self.left.evaluate(data)) and _truthy(self.right.evaluate(data))


@dataclass(frozen=True)
class Or:
    left: Any
    right: Any

    def evaluate(self, data: dict[str, Any]) -> bool:
        return _truthy(self.left.evaluate(data)) or _truthy(self.right.evaluate(data))


def _truthy(value: Any) -> bool:
    return bool(value)


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, expression: str, tokens: list[Token]) -> None:
        self._expression = expression
        self._tokens = tokens
        self._index = 0
        self._depth = 0

    def parse(self) -> Any:
        if not self._tokens:
            raise ConditionSyntaxError(self._expression, "empty expression")
        node = self._or()
        if self._index < len(self._tokens):
            token = self._tokens[self._index]
            raise ConditionSyntaxError(
                self._expression, f"unexpected token {token.text!r}", token.position
            )
        return node

    def _peek(self) -> Token | None:
        return self._tokens[self._index] if self._index < len(self._tokens) else None

    def _accept(self, text: str) -> bool:
        token = self._peek()
        if token is not None and token.text == text and token.kind in ("op", "name"):
            self._index += 1
            return True
        return False

    def _enter(self, token: Token) -> None:
        self._depth += 1
        if self._depth > _MAX_NESTING:
            raise ConditionSyntaxError(self._expression, "nesting too deep", token.position)

    def _or(self) -> Any:
        node = self._and()
        while self._accept("||"):
            node = Or(node, self._and())
        return node

    def _and(self) -> Any:
        node = self._unary()
        while self._accept("&&"):
            node = And(node, self._unary())
        return node

    def _unary(self) -> Any:
        token = self._peek()
        if token is not None and self._accept("!"):
            self._enter(token)
            node = Not(self._unary())
            self._depth -= 1
            return node
        return self._comparison()

    def _comparison(self) -> Any:
        left = self._operand()
        token = self._peek()
        if token is not None and token.text in _COMPARATORS and token.kind in ("op", "name"):
            self._index += 1
            return Comparison(left, _COMPARATORS[token.text], self._operand())
        return left

    def _operand(self) -> Any:
        token = self._peek()
        if token is None:
            raise ConditionSyntaxError(self._expression, "unexpected end of expression")
        self._index += 1
        if token.kind == "number":
            return Literal(float(token.text) if "." in token.text else int(token.text))
        if token.kind == "string":
            return Literal(_unquote(token.text))
        if token.kind == "name":
            if token.text in _KEYWORDS:
                return Literal(_KEYWORDS[token.text])
            if token.text in _COMPARATORS:
                raise ConditionSyntaxError(
                    self._expression, f"unexpected operator {token.text!r}", token.position
                )
            return Path(token.text)
        if token.text == "(":
            self._enter(token)
            node = self._or()
            self._depth -= 1
            if not self._accept(")"):
                raise ConditionSyntaxError(
                    self._expression, "missing closing parenthesis", token.position
                )
            return node
        raise ConditionSyntaxError(
            self._expression, f"unexpected token {token.text!r}", token.position
        )


@lru_cache(maxsize=512)
def parse_expression(expression: str) -> Any:
    """Parse an expression into an evaluable tree (cached per expression text)."""
    if len(expression) > _MAX_EXPRESSION_LENGTH:
        raise ConditionSyntaxError(expression[:50], "expression too long")
    return _Parser(expression, tokenize(expression)).parse()


def evaluate_expression(expression: str, data: dict[str, Any]) -> bool:
    """Parse (cached) and evaluate an expression against the run context."""
    return _truthy(parse_expression(expression.strip()).evaluate(data))
