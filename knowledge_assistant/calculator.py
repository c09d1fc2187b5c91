"""Safe arithmetic evaluation for lines like ``2 + 5 * 3``.

Expressions are parsed with :mod:`ast` and only numeric literals,
arithmetic operators, a few named constants and a few math functions are
evaluated. ``^`` means exponentiation, as on a calculator.
"""

from __future__ import annotations

import ast
import math
import operator

from .errors import CalculationError

MAX_EXPONENT = 1_000

BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.BitXor: operator.pow,
}

UNARY_OPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

CONSTANTS = {"pi": math.pi, "e": math.e}

FUNCTIONS = {
    "sqrt": math.sqrt,
    "abs": abs,
    "exp": math.exp,
    "ln": math.log,
    "log": math.log10,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round,
}


def evaluate(expr: str) -> float:
    """Evaluate ``expr`` and return the result as a float.

    Raises :class:`CalculationError` for anything that is not a plain
    arithmetic expression, including input without a single digit, so that
    bare words such as ``pi`` are left for knowledge lookup.
    """

    text = expr.strip()
    if not any(ch.isdigit() for ch in text):
        raise CalculationError("not an arithmetic expression")
    try:
        tree = ast.parse(text, mode="eval")
    except (SyntaxError, ValueError) as exc:
        raise CalculationError("not an arithmetic expression") from exc
    except (RecursionError, MemoryError) as exc:
        raise CalculationError("expression too complex") from exc
    try:
        return float(_eval_node(tree.body))
    except (RecursionError, MemoryError) as exc:
        raise CalculationError("expression too complex") from exc
    except (ArithmeticError, ValueError, TypeError) as exc:
        if isinstance(exc, CalculationError):
            raise
        raise CalculationError(str(exc)) from exc


def format_result(value: float) -> str:
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


def _eval_node(node: ast.AST) -> float:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return node.value
        raise CalculationError(f"unsupported literal {node.value!r}")

    if isinstance(node, ast.Name):
        if node.id in CONSTANTS:
            return CONSTANTS[node.id]
        raise CalculationError(f"unknown name {node.id!r}")

    if isinstance(node, ast.BinOp):
        op = BINARY_OPS.get(type(node.op))
        if op is None:
            raise CalculationError(f"operator {type(node.op).__name__} not allowed")
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if op is operator.pow:
            if abs(right) > MAX_EXPONENT:
                raise CalculationError("exponent too large")
            # Float powers overflow instead of growing without bound.
            return float(left) ** right
        return op(left, right)

    if isinstance(node, ast.UnaryOp):
        op = UNARY_OPS.get(type(node.op))
        if op is None:
            raise CalculationError(f"operator {type(node.op).__name__} not allowed")
        return op(_eval_node(node.operand))

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            raise CalculationError("unknown function")
        if node.keywords or len(node.args) != 1:
            raise CalculationError(f"{node.func.id} takes exactly one argument")
        return FUNCTIONS[node.func.id](_eval_node(node.args[0]))

    raise CalculationError(f"{type(node).__name__} not allowed")
