"""
Step conditions - a small boolean expression language.

Grammar:
    expr       := or_expr
    or_expr    := and_expr ( "||" and_expr )*
    and_expr   := not_expr ( "&&" not_expr )*
    not_expr   := "!" not_expr | comparison
    comparison := operand ( ("==" | "!=" | ">" | "<" | ">=" | "<=") operand )?
    operand    := {{path}} | path | 'string' | "string" | number
                | true | false | null | "(" expr ")"

Examples:
    {{status}} == 'confirmed'
    {{amount}} > 1000 && !{{is_vip}}
    '{{patient.name}}' != ''

Nothing is ever executed: the expression is tokenized, parsed into a tree
and walked against the run context.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from clinic_flows.flow_engine.variable_resolver import VariableResolver

logger = logging.getLogger(__name__)


class TokenType(Enum):
    """Token types for condition expressions."""
    PLACEHOLDER = 'PLACEHOLDER'
    IDENTIFIER = 'IDENTIFIER'
    STRING = 'STRING'
    NUMBER = 'NUMBER'
    TRUE = 'TRUE'
    FALSE = 'FALSE'
    NULL = 'NULL'

    LPAREN = 'LPAREN'
    RPAREN = 'RPAREN'

    EQ = 'EQ'       # ==
    NE = 'NE'       # !=
    GT = 'GT'       # >
    GTE = 'GTE'     # >=
    LT = 'LT'       # <
    LTE = 'LTE'     # <=
    AND = 'AND'     # &&
    OR = 'OR'       # ||
    NOT = 'NOT'     # !

    EOF = 'EOF'


@dataclass
class Token:
    type: TokenType
    value: str
    position: int


class ConditionSyntaxError(Exception):
    """Malformed condition expression."""
    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(f"{message} at position {position}")


KEYWORDS = {
    'true': TokenType.TRUE,
    'false': TokenType.FALSE,
    'null': TokenType.NULL,
    'None': TokenType.NULL,
    'undefined': TokenType.NULL,
}

# Longest first so '===' wins over '=='
OPERATORS = [
    ('===', TokenType.EQ),
    ('!==', TokenType.NE),
    ('==', TokenType.EQ),
    ('!=', TokenType.NE),
    ('>=', TokenType.GTE),
    ('<=', TokenType.LTE),
    ('&&', TokenType.AND),
    ('||', TokenType.OR),
    ('>', TokenType.GT),
    ('<', TokenType.LT),
    ('!', TokenType.NOT),
    ('(', TokenType.LPAREN),
    (')', TokenType.RPAREN),
]


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    length = len(text)

    while pos < length:
        char = text[pos]

        if char.isspace():
            pos += 1
            continue

        if text.startswith('{{', pos):
            end = text.find('}}', pos + 2)
            if end == -1:
                raise ConditionSyntaxError("Unterminated placeholder", pos)
            path = text[pos + 2:end].strip()
            if not path:
                raise ConditionSyntaxError("Empty placeholder", pos)
            tokens.append(Token(TokenType.PLACEHOLDER, path, pos))
            pos = end + 2
            continue

        if char in ('"', "'"):
            start = pos
            pos += 1
            chars = []
            while pos < length and text[pos] != char:
                if text[pos] == '\\' and pos + 1 < length:
                    pos += 1
                chars.append(text[pos])
                pos += 1
            if pos >= length:
                raise ConditionSyntaxError("Unterminated string", start)
            pos += 1
            tokens.append(Token(TokenType.STRING, ''.join(chars), start))
            continue

        if char.isdigit() or (char == '-' and pos + 1 < length and text[pos + 1].isdigit()):
            start = pos
            pos += 1
            while pos < length and (text[pos].isdigit() or text[pos] == '.'):
                pos += 1
            tokens.append(Token(TokenType.NUMBER, text[start:pos], start))
            continue

        if char.isalpha() or char == '_':
            start = pos
            while pos < length and (text[pos].isalnum() or text[pos] in '_.'):
                pos += 1
            word = text[start:pos]
            tokens.append(Token(KEYWORDS.get(word, TokenType.IDENTIFIER), word, start))
            continue

        for symbol, token_type in OPERATORS:
            if text.startswith(symbol, pos):
                tokens.append(Token(token_type, symbol, pos))
                pos += len(symbol)
                break
        else:
            raise ConditionSyntaxError(f"Unexpected character {char!r}", pos)

    tokens.append(Token(TokenType.EOF, '', pos))
    return tokens


# AST

@dataclass
class Literal:
    value: Any


@dataclass
class Placeholder:
    path: str


@dataclass
class Template:
    """Quoted string that may contain {{placeholders}}"""
    text: str


@dataclass
class Not:
    operand: Any


@dataclass
class Logical:
    op: TokenType
    left: Any
    right: Any


@dataclass
class Compare:
    op: TokenType
    left: Any
    right: Any


COMPARISON_TOKENS = {TokenType.EQ, TokenType.NE, TokenType.GT, TokenType.GTE, TokenType.LT, TokenType.LTE}


class ConditionParser:
    """Recursive descent parser producing the expression tree."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def expect(self, token_type: TokenType) -> Token:
        if self.current.type != token_type:
            raise ConditionSyntaxError(
                f"Expected {token_type.value}, got {self.current.type.value}",
                self.current.position,
            )
        return self.advance()

    def parse(self):
        if self.current.type == TokenType.EOF:
            raise ConditionSyntaxError("Empty condition", 0)
        node = self.parse_or()
        if self.current.type != TokenType.EOF:
            raise ConditionSyntaxError(f"Unexpected token {self.current.value!r}", self.current.position)
        return node

    def parse_or(self):
        node = self.parse_and()
        while self.current.type == TokenType.OR:
            self.advance()
            node = Logical(TokenType.OR, node, self.parse_and())
        return node

    def parse_and(self):
        node = self.parse_not()
        while self.current.type == TokenType.AND:
            self.advance()
            node = Logical(TokenType.AND, node, self.parse_not())
        return node

    def parse_not(self):
        if self.current.type == TokenType.NOT:
            self.advance()
            return Not(self.parse_not())
        return self.parse_comparison()

    def parse_comparison(self):
        left = self.parse_operand()
        if self.current.type in COMPARISON_TOKENS:
            op = self.advance().type
            right = self.parse_operand()
            return Compare(op, left, right)
        return left

    def parse_operand(self):
        token = self.current

        if token.type == TokenType.LPAREN:
            self.advance()
            node = self.parse_or()
            self.expect(TokenType.RPAREN)
            return node

        if token.type in (TokenType.PLACEHOLDER, TokenType.IDENTIFIER):
            self.advance()
            return Placeholder(token.value)

        if token.type == TokenType.STRING:
            self.advance()
            return Template(token.value)

        if token.type == TokenType.NUMBER:
            self.advance()
            try:
                return Literal(float(token.value) if '.' in token.value else int(token.value))
            except ValueError:
                raise ConditionSyntaxError(f"Invalid number {token.value!r}", token.position)

        if token.type == TokenType.TRUE:
            self.advance()
            return Literal(True)
        if token.type == TokenType.FALSE:
            self.advance()
            return Literal(False)
        if token.type == TokenType.NULL:
            self.advance()
            return Literal(None)

        raise ConditionSyntaxError(f"Unexpected token {token.value or token.type.value!r}", token.position)


def parse_condition(condition: str):
    """Parse a condition into its expression tree (raises ConditionSyntaxError)."""
    return ConditionParser(tokenize(condition)).parse()


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _equals(left: Any, right: Any) -> bool:
    left_is_number = isinstance(left, (int, float)) and not isinstance(left, bool)
    right_is_number = isinstance(right, (int, float)) and not isinstance(right, bool)
    if left_is_number != right_is_number:
        left_num, right_num = _as_number(left), _as_number(right)
        if left_num is not None and right_num is not None:
            return left_num == right_num
    return left == right


class ConditionEvaluator:
    """Walks an expression tree against a context."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        self.resolver = VariableResolver(context)

    def evaluate(self, node) -> Any:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Placeholder):
            return self.resolver.get(node.path)

        if isinstance(node, Template):
            return self.resolver.render(node.text)

        if isinstance(node, Not):
            return not self.evaluate(node.operand)

        if isinstance(node, Logical):
            left = bool(self.evaluate(node.left))
            if node.op == TokenType.OR:
                return left or bool(self.evaluate(node.right))
            return left and bool(self.evaluate(node.right))

        if isinstance(node, Compare):
            left = self.evaluate(node.left)
            right = self.evaluate(node.right)
            if node.op == TokenType.EQ:
                return _equals(left, right)
            if node.op == TokenType.NE:
                return not _equals(left, right)

            left_num, right_num = _as_number(left), _as_number(right)
            if left_num is None or right_num is None:
                return False
            if node.op == TokenType.GT:
                return left_num > right_num
            if node.op == TokenType.GTE:
                return left_num >= right_num
            if node.op == TokenType.LT:
                return left_num < right_num
            return left_num <= right_num

        raise TypeError(f"Unknown condition node: {type(node).__name__}")


def evaluate_condition(condition: Optional[str], context: Optional[Dict[str, Any]] = None) -> bool:
    """
    Evaluate a step condition against the run context.

    An empty condition is true. A malformed condition is false.
    """
    if condition is None or not condition.strip():
        return True

    try:
        tree = parse_condition(condition)
    except ConditionSyntaxError as e:
        logger.warning(f"Invalid condition {condition!r}: {e}")
        return False

    return bool(ConditionEvaluator(context).evaluate(tree))
