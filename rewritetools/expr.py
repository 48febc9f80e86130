"""
Expression hosts for rewritetools.

The matcher and the rewriters never look inside an expression directly.  They
go through an ``ExpressionInterface``, which answers five questions:

    is_leaf(e)            - is e atomic?
    operation(e)          - operator of an interior node
    arguments(e)          - ordered children of an interior node
    construct(op, args)   - build a fresh interior node
    equals(a, b)          - structural equality

Two hosts ship with the package:

    SEXPR  - nested Python lists, ["+", "x", ["*", 2, "y"]] (the default)
    TERM   - immutable, hashable Term nodes, Term("+", "x", Term("*", 2, "y"))

Either host accepts a ``normalize`` hook which is applied to every node built
by ``construct``.  This is where auto-simplification lives (flattening of
associative operators, constant folding, ...); the matcher never sees it.

Examples:
    iface = SExprInterface(normalize=compose(flatten({"+", "*"}),
                                             fold_constants(ARITHMETIC_PRELUDE)))
    iface.construct("+", [1, ["+", 2, "x"]])   # => ["+", 1, 2, "x"]
    iface.construct("*", [2, 3])               # => 6
"""

import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

ExprType = Any
NumericType = Union[int, float]
NormalizeType = Callable[[ExprType], ExprType]

# Fold handler: receives list of numeric args, returns result or None (can't fold)
FoldHandler = Callable[[List[NumericType]], Optional[NumericType]]
FoldFuncsType = Dict[str, FoldHandler]


# ============================================================
# Capability contract
# ============================================================

class ExpressionInterface:
    """
    Structural-introspection contract for a host expression type.

    Subclasses implement ``is_leaf``, ``operation``, ``arguments`` and
    ``_build``.  ``construct`` wraps ``_build`` with the optional normalize
    hook; ``equals`` defaults to ``==``.
    """

    def __init__(self, normalize: Optional[NormalizeType] = None):
        self.normalize = normalize

    def is_leaf(self, expr: ExprType) -> bool:
        raise NotImplementedError

    def operation(self, expr: ExprType) -> Any:
        raise NotImplementedError

    def arguments(self, expr: ExprType) -> Sequence[ExprType]:
        raise NotImplementedError

    def _build(self, op: Any, args: List[ExprType]) -> ExprType:
        raise NotImplementedError

    def construct(self, op: Any, args: Iterable[ExprType]) -> ExprType:
        """Build a new interior node, then apply the normalize hook."""
        node = self._build(op, list(args))
        if self.normalize is not None:
            return self.normalize(node)
        return node

    def equals(self, a: ExprType, b: ExprType) -> bool:
        return a == b

    def with_normalize(self, normalize: Optional[NormalizeType]) -> 'ExpressionInterface':
        """Return a copy of this interface using a different normalize hook."""
        return type(self)(normalize=normalize)

    def __repr__(self) -> str:
        if self.normalize is None:
            return f"{type(self).__name__}()"
        return f"{type(self).__name__}(normalize={self.normalize!r})"


class SExprInterface(ExpressionInterface):
    """
    Host for nested-list s-expressions.

    A non-empty list is an interior node whose first element is the operation
    and whose remaining elements are the arguments.  Everything else
    (numbers, strings, the empty list) is a leaf.
    """

    def is_leaf(self, expr: ExprType) -> bool:
        return not (isinstance(expr, list) and expr)

    def operation(self, expr: List) -> Any:
        return expr[0]

    def arguments(self, expr: List) -> List[ExprType]:
        return expr[1:]

    def _build(self, op: Any, args: List[ExprType]) -> List:
        return [op] + args


class Term:
    """
    Immutable tree node: an operation (``head``) applied to arguments.

        t = Term("+", "x", Term("*", 2, "y"))
        t.head  # => "+"
        t.args  # => ("x", Term("*", 2, "y"))

    Terms are hashable and compare structurally.
    """

    __slots__ = ('_head', '_args', '_hash')

    def __init__(self, head: Any, *args: ExprType):
        object.__setattr__(self, '_head', head)
        object.__setattr__(self, '_args', tuple(args))
        object.__setattr__(self, '_hash', None)

    def __setattr__(self, name, value):
        raise AttributeError("Term is immutable")

    @property
    def head(self) -> Any:
        return self._head

    @property
    def args(self) -> Tuple[ExprType, ...]:
        return self._args

    def __eq__(self, other):
        if self is other:
            return True
        if isinstance(other, Term):
            return self._head == other._head and self._args == other._args
        return NotImplemented

    def __hash__(self) -> int:
        if self._hash is None:
            object.__setattr__(self, '_hash', hash((Term, self._head, self._args)))
        return self._hash

    def __repr__(self) -> str:
        return format_sexpr(self)


class TermInterface(ExpressionInterface):
    """Host for ``Term`` trees; any non-Term value is a leaf."""

    def is_leaf(self, expr: ExprType) -> bool:
        return not isinstance(expr, Term)

    def operation(self, expr: Term) -> Any:
        return expr.head

    def arguments(self, expr: Term) -> Tuple[ExprType, ...]:
        return expr.args

    def _build(self, op: Any, args: List[ExprType]) -> Term:
        return Term(op, *args)


SEXPR = SExprInterface()
TERM = TermInterface()


def resolve_interface(interface: Optional[ExpressionInterface]) -> ExpressionInterface:
    """Return ``interface``, or the list host when None."""
    return SEXPR if interface is None else interface


def node_count(expr: ExprType, interface: Optional[ExpressionInterface] = None,
               limit: Optional[int] = None) -> int:
    """
    Count the nodes (leaves included) of an expression tree.

    With ``limit``, counting stops as soon as the count exceeds it, so the
    result is at most ``limit + 1``.
    """
    iface = resolve_interface(interface)
    count = 0
    stack = [expr]
    while stack:
        node = stack.pop()
        count += 1
        if limit is not None and count > limit:
            break
        if not iface.is_leaf(node):
            stack.extend(iface.arguments(node))
    return count


# ============================================================
# Leaf predicates (usable as slot and segment predicates)
# ============================================================

def constant(exp: ExprType) -> bool:
    """True if exp is a numeric constant (bools excluded)."""
    return isinstance(exp, (int, float)) and not isinstance(exp, bool)


def variable(exp: ExprType) -> bool:
    """True if exp is a symbol (string)."""
    return isinstance(exp, str)


def compound(exp: ExprType) -> bool:
    """True if exp is an interior node of either shipped host."""
    return (isinstance(exp, list) and bool(exp)) or isinstance(exp, Term)


def free_in(var: str, expr: ExprType) -> bool:
    """
    Check if a variable appears in an expression.

    Works on both shipped hosts: operations are searched as well as
    arguments, so ``free_in("f", ["f", 1])`` is True.
    """
    if isinstance(expr, str):
        return expr == var
    if isinstance(expr, list):
        return any(free_in(var, sub) for sub in expr)
    if isinstance(expr, Term):
        return free_in(var, expr.head) or any(free_in(var, sub) for sub in expr.args)
    return False


def free_of(var: str) -> Callable[[ExprType], bool]:
    """Slot predicate: the matched expression does not contain ``var``."""
    def predicate(exp: ExprType) -> bool:
        return not free_in(var, exp)
    predicate.__name__ = f"free_of_{var}"
    return predicate


def all_of(pred: Callable[[ExprType], bool]) -> Callable[[Sequence[ExprType]], bool]:
    """Segment predicate: every element of the matched run satisfies ``pred``."""
    def predicate(items: Sequence[ExprType]) -> bool:
        return all(pred(item) for item in items)
    predicate.__name__ = f"all_{getattr(pred, '__name__', 'of')}"
    return predicate


# ============================================================
# Normalization hooks
# ============================================================

def compose(*hooks: Optional[NormalizeType]) -> NormalizeType:
    """Chain normalize hooks left to right, skipping None entries."""
    active = [h for h in hooks if h is not None]

    def normalize(expr: ExprType) -> ExprType:
        for hook in active:
            expr = hook(expr)
        return expr
    return normalize


def flatten(ops: Iterable[Any]) -> NormalizeType:
    """
    Normalize hook flattening nested associative operations.

        flatten({"+"})(["+", 1, ["+", 2, 3]])  # => ["+", 1, 2, 3]

    Works on both shipped hosts.
    """
    ops = frozenset(ops)

    def normalize(expr: ExprType) -> ExprType:
        if isinstance(expr, list) and expr and expr[0] in ops:
            op = expr[0]
            out = [op]
            for arg in expr[1:]:
                if isinstance(arg, list) and arg and arg[0] == op:
                    out.extend(arg[1:])
                else:
                    out.append(arg)
            return out
        if isinstance(expr, Term) and expr.head in ops:
            args = []
            for arg in expr.args:
                if isinstance(arg, Term) and arg.head == expr.head:
                    args.extend(arg.args)
                else:
                    args.append(arg)
            return Term(expr.head, *args)
        return expr
    return normalize


def nary_fold(
    identity: NumericType,
    binary_op: Callable[[NumericType, NumericType], NumericType],
    unary: Optional[Callable[[NumericType], NumericType]] = None,
) -> FoldHandler:
    """Create an n-ary folder with identity element.

    Examples:
        nary_fold(0, lambda a, b: a + b)  # (+) = 0, (+ x) = x, (+ x y z) = x+y+z
        nary_fold(1, lambda a, b: a * b)  # (*) = 1, (* x) = x, (* x y z) = x*y*z
    """
    def handler(args: List[NumericType]) -> NumericType:
        if not args:
            return identity
        if len(args) == 1:
            return unary(args[0]) if unary else args[0]
        result = args[0]
        for a in args[1:]:
            result = binary_op(result, a)
        return result
    return handler


def unary_only(f: Callable[[NumericType], NumericType]) -> FoldHandler:
    """Create a unary-only folder (e.g., sin, cos, exp)."""
    def handler(args: List[NumericType]) -> Optional[NumericType]:
        return f(args[0]) if len(args) == 1 else None
    return handler


def binary_only(f: Callable[[NumericType, NumericType], NumericType]) -> FoldHandler:
    """Create a binary-only folder (e.g., /, ^, atan2)."""
    def handler(args: List[NumericType]) -> Optional[NumericType]:
        return f(args[0], args[1]) if len(args) == 2 else None
    return handler


def special_minus() -> FoldHandler:
    """Subtraction: (-) = 0, (- x) = -x, (- x y) = x-y, wider arities don't fold."""
    def handler(args: List[NumericType]) -> Optional[NumericType]:
        if len(args) > 2:
            return None
        if not args:
            return 0
        if len(args) == 1:
            return -args[0]
        return args[0] - args[1]
    return handler


def safe_div() -> FoldHandler:
    """Division that refuses to fold a zero divisor."""
    def handler(args: List[NumericType]) -> Optional[NumericType]:
        if len(args) != 2 or args[1] == 0:
            return None
        return args[0] / args[1]
    return handler


ARITHMETIC_PRELUDE: FoldFuncsType = {
    "+": nary_fold(0, lambda a, b: a + b),
    "*": nary_fold(1, lambda a, b: a * b),
    "-": special_minus(),
    "/": safe_div(),
    "^": binary_only(lambda a, b: a ** b),
}

MATH_PRELUDE: FoldFuncsType = {
    **ARITHMETIC_PRELUDE,
    "sin": unary_only(math.sin),
    "cos": unary_only(math.cos),
    "tan": unary_only(math.tan),
    "exp": unary_only(math.exp),
    "log": unary_only(math.log),
    "sqrt": unary_only(math.sqrt),
    "abs": unary_only(abs),
}


def fold_constants(prelude: FoldFuncsType) -> NormalizeType:
    """
    Normalize hook evaluating operations whose arguments are all constants.

    A handler that returns None, or raises ArithmeticError/ValueError
    (math domain errors, overflow), leaves the node as built.  Integral
    float results are turned back into ints.
    """
    def evaluate(op: Any, args: Sequence[ExprType], node: ExprType) -> ExprType:
        if op not in prelude or not all(constant(a) for a in args):
            return node
        try:
            result = prelude[op](list(args))
        except (ArithmeticError, ValueError):
            return node
        if result is None:
            return node
        if isinstance(result, float) and result.is_integer():
            return int(result)
        return result

    def normalize(expr: ExprType) -> ExprType:
        if isinstance(expr, list) and expr:
            return evaluate(expr[0], expr[1:], expr)
        if isinstance(expr, Term):
            return evaluate(expr.head, expr.args, expr)
        return expr
    return normalize


# ============================================================
# Expression Builder
# ============================================================

class _ExprBuilder:
    """
    Expression builder for the list host.

    Examples:
        from rewritetools import E

        expr = E("(+ x (* 2 y))")                 # parse
        expr = E.op("+", "x", E.op("*", 2, "y"))  # build
        x, y = E.vars("x", "y")
    """

    def __call__(self, s: str) -> ExprType:
        """
        Parse an s-expression string.

        Examples:
            E("(+ x 1)") -> ["+", "x", 1]
            E("(dd (^ x 2) x)") -> ["dd", ["^", "x", 2], "x"]
        """
        return parse_sexpr(s)

    def op(self, name: Any, *args) -> List:
        """Build a compound expression: E.op("+", "x", 1) -> ["+", "x", 1]."""
        return [name] + list(args)

    def var(self, name: str) -> str:
        """Variables are just strings."""
        return name

    def vars(self, *names: str) -> Tuple[str, ...]:
        """Create multiple variables for unpacking."""
        return names

    def const(self, value: NumericType) -> NumericType:
        """Constants are just numbers."""
        return value

    def __repr__(self) -> str:
        return "E (expression builder)"


E = _ExprBuilder()


def _tokenize(s: str) -> List[str]:
    return s.replace('(', ' ( ').replace(')', ' ) ').split()


def _read_atom(token: str) -> ExprType:
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return float(token)
    except ValueError:
        return token


def parse_sexpr(s: str) -> ExprType:
    """
    Parse an S-expression string into a nested list.

    Numbers become ints or floats, every other token is a symbol (string).
    Returns None for blank input.

    Examples:
        "(+ x 1)" -> ["+", "x", 1]
        "(dd (^ x 2) x)" -> ["dd", ["^", "x", 2], "x"]

    Raises:
        ValueError: on unbalanced parentheses or trailing input
    """
    tokens = _tokenize(s)
    if not tokens:
        return None

    pos = 0

    def read():
        nonlocal pos
        if pos >= len(tokens):
            raise ValueError(f"Unexpected end of input: {s!r}")
        token = tokens[pos]
        pos += 1
        if token == '(':
            items = []
            while pos < len(tokens) and tokens[pos] != ')':
                items.append(read())
            if pos >= len(tokens):
                raise ValueError(f"Missing ')' in {s!r}")
            pos += 1
            return items
        if token == ')':
            raise ValueError(f"Unexpected ')' in {s!r}")
        return _read_atom(token)

    result = read()
    if pos != len(tokens):
        raise ValueError(f"Trailing input after expression in {s!r}")
    return result


def format_sexpr(expr: ExprType) -> str:
    """
    Format an expression as an S-expression string.

    Examples:
        ["+", "x", 1] -> "(+ x 1)"
        Term("sin", "x") -> "(sin x)"
    """
    if isinstance(expr, list):
        return "(" + " ".join(format_sexpr(e) for e in expr) + ")"
    if isinstance(expr, Term):
        parts = [format_sexpr(expr.head)] + [format_sexpr(a) for a in expr.args]
        return "(" + " ".join(parts) + ")"
    if isinstance(expr, tuple):
        return "[" + " ".join(format_sexpr(e) for e in expr) + "]"
    return str(expr)
