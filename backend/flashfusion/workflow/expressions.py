# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Safe Expression Evaluator

AST-based evaluation of condition and transform expressions.
Context keys are exposed as names; nothing is compiled or executed.

Builder-authored expressions are often written JavaScript style, so
``&&``, ``||``, ``!``, ``===``, ``!==``, ``true``, ``false`` and ``null``
are accepted alongside their Python spellings.
"""

import ast
import math
import operator
from typing import Dict, Any, Mapping

from .exceptions import ExpressionEvaluationError


# Allowed operators for safe evaluation
SAFE_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Not: operator.not_,
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.In: lambda x, y: x in y,
    ast.NotIn: lambda x, y: x not in y,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


# Allowed functions for safe evaluation
SAFE_FUNCTIONS = {
    'len': len,
    'str': str,
    'int': int,
    'float': float,
    'bool': bool,
    'abs': abs,
    'min': min,
    'max': max,
    'round': round,
    'sum': sum,
    'any': any,
    'all': all,
}


LITERALS = {
    'true': True,
    'false': False,
    'null': None,
    'undefined': None,
    'True': True,
    'False': False,
    'None': None,
}

# Longest first so "===" wins over "==" and "!==" over "!="
_JS_OPERATORS = [
    ("===", " == "),
    ("!==", " != "),
    ("&&", " and "),
    ("||", " or "),
]

# Evaluation runs on the event loop; every result is kept small
_MAX_EXPONENT = 1000
_MAX_INT_BITS = 4096
_MAX_SIZE = 100_000

_SEQUENCE_TYPES = (str, list, tuple)


def _size(value: Any, limit: int = _MAX_SIZE) -> int:
    """
    Characters plus elements in ``value``, counted through nested
    containers. Counting stops once ``limit`` is exceeded.
    """
    total = 0
    stack = [value]
    while stack and total <= limit:
        current = stack.pop()
        if isinstance(current, str):
            total += len(current)
        elif isinstance(current, (list, tuple)):
            total += len(current)
            stack.extend(current)
        elif isinstance(current, Mapping):
            total += len(current)
            stack.extend(current.keys())
            stack.extend(current.values())
    return total


def _check_binop(op_type, left, right) -> None:
    if op_type is ast.Pow and isinstance(left, (int, float)) and isinstance(right, (int, float)):
        if abs(right) > _MAX_EXPONENT:
            raise ValueError(f"Exponent too large: {right}")
        if abs(left) > 1 and right > 0 and right * math.log2(abs(left)) > _MAX_INT_BITS:
            raise ValueError("Power result too large")

    if op_type is ast.Mult:
        for seq, count in ((left, right), (right, left)):
            if isinstance(seq, _SEQUENCE_TYPES) and isinstance(count, int):
                if count > 0 and _size(seq) * count > _MAX_SIZE:
                    raise ValueError("Sequence repetition too large")

    if op_type is ast.Add and isinstance(left, _SEQUENCE_TYPES) and isinstance(right, _SEQUENCE_TYPES):
        if _size(left) + _size(right) > _MAX_SIZE:
            raise ValueError("Sequence concatenation too large")


def _check_result(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool) and value.bit_length() > _MAX_INT_BITS:
        raise ValueError("Integer result too large")
    return value


def normalize_expression(expression: str) -> str:
    """Rewrite JavaScript-style operators outside of string literals"""
    out = []
    i = 0
    quote = None
    n = len(expression)

    while i < n:
        ch = expression[i]

        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(expression[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        if ch in ("'", '"'):
            quote = ch
            out.append(ch)
            i += 1
            continue

        for js, py in _JS_OPERATORS:
            if expression.startswith(js, i):
                out.append(py)
                i += len(js)
                break
        else:
            if ch == "!" and not expression.startswith("!=", i):
                out.append(" not ")
            else:
                out.append(ch)
            i += 1

    return "".join(out).strip()


class SafeEvaluator(ast.NodeVisitor):
    """
    AST-based safe evaluator.

    Restricts evaluation to:
    - Arithmetic, comparison and logical operators
    - Field access on mappings and indexing of sequences
    - List, tuple and dict literals, conditional expressions
    - Safe built-in functions (len, str, int, etc.)
    - Variable references from provided context
    """

    def __init__(self, variables: Mapping[str, Any]):
        self.variables = variables

    def visit_Expression(self, node):
        return self.visit(node.body)

    def visit_Constant(self, node):
        return node.value

    def visit_Name(self, node):
        # Context values shadow literals and functions
        if node.id in self.variables:
            return self.variables[node.id]
        elif node.id in LITERALS:
            return LITERALS[node.id]
        elif node.id in SAFE_FUNCTIONS:
            return SAFE_FUNCTIONS[node.id]
        else:
            raise ValueError(f"Undefined variable: {node.id}")

    def visit_BinOp(self, node):
        left = self.visit(node.left)
        right = self.visit(node.right)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ValueError(f"Operator not allowed: {op_type.__name__}")

        _check_binop(op_type, left, right)
        return _check_result(SAFE_OPERATORS[op_type](left, right))

    def visit_UnaryOp(self, node):
        operand = self.visit(node.operand)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ValueError(f"Operator not allowed: {op_type.__name__}")

        return SAFE_OPERATORS[op_type](operand)

    def visit_Compare(self, node):
        left = self.visit(node.left)

        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            op_type = type(op)

            if op_type not in SAFE_OPERATORS:
                raise ValueError(f"Operator not allowed: {op_type.__name__}")

            if not SAFE_OPERATORS[op_type](left, right):
                return False

            left = right

        return True

    def visit_BoolOp(self, node):
        # Short-circuit and return the deciding operand, like Python and JS
        if isinstance(node.op, ast.And):
            value = True
            for operand in node.values:
                value = self.visit(operand)
                if not value:
                    return value
            return value
        elif isinstance(node.op, ast.Or):
            value = False
            for operand in node.values:
                value = self.visit(operand)
                if value:
                    return value
            return value
        else:
            raise ValueError(f"Boolean operator not allowed: {type(node.op).__name__}")

    def visit_IfExp(self, node):
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_Attribute(self, node):
        # Field access is only defined for mappings; no object attributes
        value = self.visit(node.value)
        if isinstance(value, Mapping):
            return value.get(node.attr)
        if value is None:
            raise ValueError(f"Cannot read field '{node.attr}' of null")
        raise ValueError(f"Field access not allowed on {type(value).__name__}")

    def visit_Subscript(self, node):
        value = self.visit(node.value)
        key = self.visit(node.slice)

        if isinstance(value, Mapping):
            return value.get(key)
        if isinstance(value, (list, tuple, str)):
            if not isinstance(key, int) or isinstance(key, bool):
                raise ValueError(f"Index must be an integer, got {type(key).__name__}")
            try:
                return value[key]
            except IndexError:
                return None
        raise ValueError(f"Indexing not allowed on {type(value).__name__}")

    def visit_List(self, node):
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node):
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Dict(self, node):
        if any(key is None for key in node.keys):
            raise ValueError("Dict unpacking not allowed")
        return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values)}

    def visit_Call(self, node):
        if not isinstance(node.func, ast.Name) or node.func.id not in SAFE_FUNCTIONS:
            raise ValueError(f"Function not allowed: {getattr(node.func, 'id', 'unknown')}")
        func = SAFE_FUNCTIONS[node.func.id]
        args = [self.visit(arg) for arg in node.args]
        kwargs = {kw.arg: self.visit(kw.value) for kw in node.keywords if kw.arg is not None}

        if func is str and args and _size(args[0]) > _MAX_SIZE:
            raise ValueError("Value too large to convert to string")

        return _check_result(func(*args, **kwargs))

    def generic_visit(self, node):
        raise ValueError(f"AST node type not allowed: {type(node).__name__}")


def evaluate_expression(expression: str, variables: Mapping[str, Any]) -> Any:
    """
    Safely evaluate an expression string against context variables.

    Args:
        expression: Expression string (e.g., "count > 5 && status === 'ok'")
        variables: Variable context mapping names to values

    Returns:
        Value of the expression

    Raises:
        ExpressionEvaluationError: If the expression is invalid or uses unsafe operations

    Examples:
        >>> evaluate_expression("item.price * 2", {"item": {"price": 3}})
        6
    """
    if not isinstance(expression, str) or not expression.strip():
        raise ExpressionEvaluationError(str(expression), "Expression is empty")

    try:
        tree = ast.parse(normalize_expression(expression), mode='eval')
    except SyntaxError as e:
        raise ExpressionEvaluationError(expression, f"Invalid syntax: {e.msg}")

    try:
        return SafeEvaluator(variables).visit(tree)
    except ExpressionEvaluationError:
        raise
    except Exception as e:
        raise ExpressionEvaluationError(expression, str(e))


def evaluate_condition(condition: str, variables: Dict[str, Any]) -> bool:
    """
    Safely evaluate a boolean condition string.

    Examples:
        >>> evaluate_condition("count > 5", {"count": 10})
        True
        >>> evaluate_condition("ready && len(items) > 0", {"ready": True, "items": [1]})
        True
    """
    return bool(evaluate_expression(condition, variables))
