"""
rewritetools - pattern matching and composable term rewriting

Match structural patterns against tree-shaped expressions and combine rules
into rewriting strategies.  Works on any expression type that implements the
small ExpressionInterface contract; nested Python lists are the default.

Quick Start:
    from rewritetools import E, make_rule, slot, segment, Chain, Fixpoint, Postwalk

    add_zero = make_rule(["+", segment("xs"), 0], ["+", [":...", "xs"]])
    mul_one = make_rule(["*", slot("x"), 1], [":", "x"])

    simplify = Fixpoint(Postwalk(Chain([add_zero, mul_one])))
    simplify(E("(+ (* y 1) 0)"))  # => ["+", "y"]

Pattern descriptions:
    slot("x")  / ["?", "x"]           - any single expression, bound to x
    slot("n", pred) / ["?", "n", pred] - single expression satisfying pred
    ["?c", "n"], ["?v", "v"]          - constant / variable shorthands
    segment("xs") / ["?...", "xs"]    - zero or more arguments, bound to xs
    [op, ...]                         - a node with operation op
    anything else                     - literal

Skeleton templates (rule consequents):
    [":", "x"]      - bound value of x
    [":...", "xs"]  - splice the run bound to xs
"""

__version__ = "0.1.0"

from .bindings import Bindings, NoMatch
from .expr import (
    ExprType,
    ExpressionInterface,
    SExprInterface,
    Term,
    TermInterface,
    SEXPR,
    TERM,
    node_count,
    # Leaf predicates
    constant,
    variable,
    compound,
    free_in,
    free_of,
    all_of,
    # Normalization hooks
    compose,
    flatten,
    fold_constants,
    nary_fold,
    unary_only,
    binary_only,
    special_minus,
    safe_div,
    ARITHMETIC_PRELUDE,
    MATH_PRELUDE,
    # Expression builder
    E,
    parse_sexpr,
    format_sexpr,
)
from .pattern import (
    ConfigError,
    Pattern,
    Literal,
    Slot,
    Segment,
    TermPattern,
    slot,
    segment,
    term,
    compile_pattern,
    pattern_variables,
)
from .matcher import match
from .rewriters import (
    Rewriter,
    apply,
    Empty,
    Chain,
    RestartedChain,
    IfElse,
    If,
    PassThrough,
    Fixpoint,
    FixpointNoCycle,
    simplifier,
)
from .rule import Rule, make_rule, instantiate, skeleton
from .walkers import Prewalk, Postwalk, WalkOptions, DEFAULT_THREAD_CUTOFF

__all__ = [
    "__version__",
    # Results
    "Bindings",
    "NoMatch",
    # Expressions
    "ExprType",
    "ExpressionInterface",
    "SExprInterface",
    "Term",
    "TermInterface",
    "SEXPR",
    "TERM",
    "node_count",
    "constant",
    "variable",
    "compound",
    "free_in",
    "free_of",
    "all_of",
    "compose",
    "flatten",
    "fold_constants",
    "nary_fold",
    "unary_only",
    "binary_only",
    "special_minus",
    "safe_div",
    "ARITHMETIC_PRELUDE",
    "MATH_PRELUDE",
    "E",
    "parse_sexpr",
    "format_sexpr",
    # Patterns
    "ConfigError",
    "Pattern",
    "Literal",
    "Slot",
    "Segment",
    "TermPattern",
    "slot",
    "segment",
    "term",
    "compile_pattern",
    "pattern_variables",
    "match",
    # Rules
    "Rule",
    "make_rule",
    "instantiate",
    "skeleton",
    # Rewriters
    "Rewriter",
    "apply",
    "Empty",
    "Chain",
    "RestartedChain",
    "IfElse",
    "If",
    "PassThrough",
    "Fixpoint",
    "FixpointNoCycle",
    "simplifier",
    "Prewalk",
    "Postwalk",
    "WalkOptions",
    "DEFAULT_THREAD_CUTOFF",
]
