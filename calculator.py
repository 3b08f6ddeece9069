# calculator.py

"""
Expression pipeline for the command-line calculator.

An input line goes through four stages, each consuming the previous one's output:

1. ``tokenize``      - raw text -> Number / Operator / LeftParen / RightParen tokens.
                       A '-' directly after an operator, after '(' or at the start of
                       the line is folded into a negative number literal.
2. ``to_postfix``    - shunting-yard conversion to reverse-Polish order, rejecting
                       misplaced operators and unbalanced parentheses.
3. ``build_tree``    - postfix tokens -> binary expression tree of ``Leaf`` and
                       ``OperatorNode`` values.
4. ``evaluate``      - post-order walk of the tree producing a float.

``evaluate_expression`` chains the four stages. The first stage that detects a problem
raises an ``EvalError`` subclass and nothing downstream runs.

Supported operators are ``+ - * / ^``; ``^`` binds tightest and groups right-to-left.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


# ---------------------------
# Error Classes
# ---------------------------

class EvalError(Exception):
    """Base class for every error reported by the expression pipeline."""
    pass

class LexError(EvalError):
    """Raised by the tokenizer for characters or literals it cannot classify."""
    pass

class ExpressionSyntaxError(EvalError):
    """Raised by the postfix converter for misplaced operators and unbalanced parentheses."""
    pass

class StructureError(EvalError):
    """Raised when a postfix sequence does not reduce to exactly one tree."""
    pass

class ExpressionArithmeticError(EvalError, ArithmeticError):
    """Raised by the evaluator for division by zero and results outside the real domain."""
    pass

class InternalError(EvalError):
    """Raised when the evaluator meets an operator symbol the pipeline never produces."""
    pass


# ---------------------------
# Tokens and Operators
# ---------------------------

class TokenType:
    """Enumeration of token kinds."""
    NUMBER = 'NUMBER'
    OPERATOR = 'OPERATOR'
    LPAREN = 'LPAREN'
    RPAREN = 'RPAREN'

@dataclass(frozen=True)
class Token:
    """A lexeme tagged with its kind and the character offset it started at."""
    type: str
    value: str
    pos: int = 0

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r}, pos={self.pos})"

# Binary operators: symbol -> (precedence, right_assoc). Higher number binds tighter.
OPERATORS: Dict[str, Tuple[int, bool]] = {
    '^': (3, True),
    '*': (2, False),
    '/': (2, False),
    '+': (1, False),
    '-': (1, False),
}

_DIGITS = set('0123456789.')


def is_operator(symbol: str) -> bool:
    return symbol in OPERATORS

def precedence(symbol: str) -> int:
    """Return the precedence of ``symbol``, or 0 for anything that is not an operator."""
    return OPERATORS.get(symbol, (0, False))[0]

def is_right_associative(symbol: str) -> bool:
    return OPERATORS.get(symbol, (0, False))[1]


# ---------------------------
# Tokenizer
# ---------------------------

def _number_token(lexeme: str, pos: int) -> Token:
    # Leaves must hold a literal that parses as a finite float, so '1.2.3' and '.' stop here.
    try:
        value = float(lexeme)
    except ValueError:
        raise LexError(f"invalid number '{lexeme}' at position {pos}")
    if not math.isfinite(value):
        raise LexError(f"number '{lexeme}' at position {pos} is out of range")
    return Token(TokenType.NUMBER, lexeme, pos)

def _starts_negative_literal(tokens: List[Token]) -> bool:
    """A '-' opens a negative literal at the start of input or after an operator or '('."""
    if not tokens:
        return True
    last = tokens[-1]
    return last.type in (TokenType.OPERATOR, TokenType.LPAREN)

def tokenize(expr: str) -> List[Token]:
    """
    Split ``expr`` into tokens, scanning left to right.

    Consecutive digits and '.' accumulate into one number. Whitespace separates tokens
    and is otherwise ignored. A '-' in negative-literal position greedily takes the
    digits that follow it; with no digit or '.' after it the input is rejected.
    """
    tokens: List[Token] = []
    num = ''
    num_start = 0
    i = 0
    n = len(expr)
    while i < n:
        ch = expr[i]
        if ch in _DIGITS:
            if not num:
                num_start = i
            num += ch
            i += 1
            continue

        if num:
            tokens.append(_number_token(num, num_start))
            num = ''

        if ch.isspace():
            i += 1
            continue

        if ch == '-' and _starts_negative_literal(tokens):
            j = i + 1
            while j < n and expr[j] in _DIGITS:
                j += 1
            if j == i + 1:
                raise LexError(f"invalid use of negative sign at position {i}")
            tokens.append(_number_token(expr[i:j], i))
            i = j
            continue

        if is_operator(ch):
            tokens.append(Token(TokenType.OPERATOR, ch, i))
        elif ch == '(':
            tokens.append(Token(TokenType.LPAREN, ch, i))
        elif ch == ')':
            tokens.append(Token(TokenType.RPAREN, ch, i))
        else:
            raise LexError(f"invalid character {ch!r} at position {i}")
        i += 1

    if num:
        tokens.append(_number_token(num, num_start))
    return tokens


# ---------------------------
# Infix-to-Postfix Converter
# ---------------------------

def _check_operator_position(tokens: Sequence[Token], index: int) -> None:
    token = tokens[index]
    if index == 0:
        raise ExpressionSyntaxError(f"operator '{token.value}' in invalid position {token.pos}")
    previous = tokens[index - 1]
    if previous.type in (TokenType.OPERATOR, TokenType.LPAREN):
        raise ExpressionSyntaxError(f"operator '{token.value}' in invalid position {token.pos}")

def to_postfix(tokens: Sequence[Token]) -> List[Token]:
    """
    Reorder infix ``tokens`` into postfix using the shunting-yard algorithm.

    An incoming operator pops stacked operators of greater or equal precedence, except
    for right-associative '^', which never pops on equal precedence. Parenthesis balance
    is tracked as tokens are read; it may never go negative and must end at zero.
    """
    output: List[Token] = []
    stack: List[Token] = []
    balance = 0

    for index, token in enumerate(tokens):
        if token.type == TokenType.NUMBER:
            output.append(token)
        elif token.type == TokenType.OPERATOR:
            _check_operator_position(tokens, index)
            while (stack and stack[-1].type == TokenType.OPERATOR
                   and precedence(stack[-1].value) >= precedence(token.value)
                   and not is_right_associative(token.value)):
                output.append(stack.pop())
            stack.append(token)
        elif token.type == TokenType.LPAREN:
            stack.append(token)
            balance += 1
        elif token.type == TokenType.RPAREN:
            balance -= 1
            if balance < 0:
                raise ExpressionSyntaxError(f"mismatched parentheses: unexpected ')' at position {token.pos}")
            while stack and stack[-1].type != TokenType.LPAREN:
                output.append(stack.pop())
            if not stack:
                raise ExpressionSyntaxError(f"mismatched parentheses: unexpected ')' at position {token.pos}")
            stack.pop()
        else:
            raise InternalError(f"unknown token type {token.type!r}")

    if balance != 0:
        raise ExpressionSyntaxError("mismatched parentheses: missing ')'")

    while stack:
        top = stack.pop()
        if top.type in (TokenType.LPAREN, TokenType.RPAREN):
            raise ExpressionSyntaxError("mismatched parentheses")
        output.append(top)
    return output

def format_postfix(postfix: Sequence[Token]) -> str:
    """Render a postfix sequence as space-separated lexemes, e.g. ``3 4 2 * +``."""
    return ' '.join(token.value for token in postfix)


# ---------------------------
# Expression Tree
# ---------------------------

@dataclass(frozen=True)
class Leaf:
    """A numeric literal."""
    literal: str

@dataclass(frozen=True)
class OperatorNode:
    """A binary operator applied to a left and a right operand."""
    op: str
    left: 'Node'
    right: 'Node'

Node = Union[Leaf, OperatorNode]


def build_tree(postfix: Sequence[Token]) -> Node:
    """Fold a postfix sequence into a single expression tree."""
    stack: List[Node] = []
    for token in postfix:
        if token.type == TokenType.NUMBER:
            stack.append(Leaf(token.value))
        elif token.type == TokenType.OPERATOR:
            if len(stack) < 2:
                raise StructureError(f"malformed expression: operator '{token.value}' is missing an operand")
            right = stack.pop()
            left = stack.pop()
            stack.append(OperatorNode(token.value, left, right))
        else:
            raise StructureError(f"malformed expression: unexpected {token.value!r} in postfix input")
    if len(stack) != 1:
        raise StructureError("malformed expression")
    return stack[0]

def _walk(node: Node):
    """Yield every node of the tree below ``node``, without recursing."""
    pending = [node]
    while pending:
        current = pending.pop()
        yield current
        if isinstance(current, OperatorNode):
            pending.append(current.right)
            pending.append(current.left)

def count_leaves(node: Node) -> int:
    return sum(1 for n in _walk(node) if isinstance(n, Leaf))

def count_operators(node: Node) -> int:
    return sum(1 for n in _walk(node) if isinstance(n, OperatorNode))


# ---------------------------
# Evaluator
# ---------------------------

def _power(base: float, exponent: float) -> float:
    if base == 0 and exponent < 0:
        raise ExpressionArithmeticError(f"zero raised to a negative power ({exponent:g})")
    try:
        return math.pow(base, exponent)
    except ValueError:
        raise ExpressionArithmeticError(f"{base:g} ^ {exponent:g} is not a real number")
    except OverflowError:
        # same as the other operators: overflow saturates to infinity
        negative = base < 0 and exponent.is_integer() and exponent % 2 == 1
        return -math.inf if negative else math.inf

def _apply(op: str, left: float, right: float) -> float:
    if op == '+':
        return left + right
    if op == '-':
        return left - right
    if op == '*':
        return left * right
    if op == '/':
        if right == 0:
            raise ExpressionArithmeticError("division by zero")
        return left / right
    if op == '^':
        return _power(left, right)
    raise InternalError(f"unknown operator {op!r}")

def evaluate(node: Node) -> float:
    """
    Evaluate ``node`` in post-order. Both operands are always computed before the
    operator is applied.

    The walk keeps its own stack, so tree depth is not bounded by the interpreter's
    recursion limit.
    """
    values: List[float] = []
    pending: List[Tuple[Node, bool]] = [(node, False)]
    while pending:
        current, children_done = pending.pop()
        if isinstance(current, Leaf):
            values.append(float(current.literal))
        elif children_done:
            right = values.pop()
            left = values.pop()
            values.append(_apply(current.op, left, right))
        else:
            pending.append((current, True))
            pending.append((current.right, False))
            pending.append((current.left, False))
    return values[0]


# ---------------------------
# Pipeline
# ---------------------------

def evaluate_expression(text: str) -> float:
    """
    Evaluate one line of input and return its value.

    Raises:
        EvalError: for empty input, or the subclass of whichever stage rejected the line.
    """
    if not text or not text.strip():
        raise EvalError("empty input")
    try:
        tokens = tokenize(text)
        logger.debug("tokens: %s", tokens)
        postfix = to_postfix(tokens)
        logger.debug("postfix: %s", format_postfix(postfix))
        tree = build_tree(postfix)
        result = evaluate(tree)
    except EvalError as e:
        logger.debug("rejected %r: %s: %s", text, type(e).__name__, e)
        raise
    logger.debug("result of %r: %r", text, result)
    return result


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of ``try_evaluate``: exactly one of ``value`` and ``error`` is set."""
    value: Optional[float] = None
    error: Optional[EvalError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

def try_evaluate(text: str) -> EvaluationResult:
    """Like ``evaluate_expression`` but returns the error instead of raising it."""
    try:
        return EvaluationResult(value=evaluate_expression(text))
    except EvalError as e:
        return EvaluationResult(error=e)

def format_result(value: float) -> str:
    """Format ``value`` with six significant digits, dropping trailing zeros (1400, 0.333333, 1e+20)."""
    if value == 0:
        # avoid printing '-0'
        value = 0.0
    return f"{value:g}"
