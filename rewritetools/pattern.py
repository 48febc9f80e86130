"""
Compiled patterns for rewritetools.

A pattern is a tree of four node types:

    Literal(value)                 - matches a leaf equal to value
    Slot(name, predicate=None)     - matches exactly one sub-expression
    Segment(name, predicate=None)  - matches a run of zero or more arguments
    TermPattern(op, [patterns])    - matches an interior node with operation op

Patterns are normally produced by ``compile_pattern`` from a pre-parsed
description: nested lists ``[op, sub1, sub2, ...]`` in which variables are
given either as builder objects or as marker lists:

    slot("x")            or  ["?", "x"]
    slot("n", constant)  or  ["?", "n", constant]   or  ["?c", "n"]
    slot("v", variable)  or  ["?v", "v"]
    segment("xs")        or  ["?...", "xs"]
    segment("xs", pred)  or  ["?...", "xs", pred]

Every other value is a literal.  For example

    compile_pattern(["+", ["?...", "xs"], 0])

matches any sum whose last argument is 0, binding the others to ``xs``.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .expr import constant, variable

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]

SLOT_MARKER = "?"
SEGMENT_MARKER = "?..."
CONSTANT_MARKER = "?c"
VARIABLE_MARKER = "?v"


class ConfigError(ValueError):
    """Raised when a pattern, rule or walker is constructed from invalid input."""


class Pattern:
    """Base class of compiled pattern nodes."""

    __slots__ = ()

    def variables(self) -> List['Pattern']:
        """Return every Slot and Segment in this pattern, left to right."""
        found: List[Pattern] = []
        _collect_variables(self, found)
        return found


class Literal(Pattern):
    """Matches only a leaf structurally equal to ``value``."""

    __slots__ = ('value',)

    def __init__(self, value: Any):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, Literal) and self.value == other.value

    def __hash__(self):
        return hash((Literal, repr(self.value)))

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


class _Variable(Pattern):
    __slots__ = ('name', 'predicate')

    def __init__(self, name: str, predicate: Optional[Predicate] = None):
        if not isinstance(name, str) or not name:
            raise ConfigError(f"Variable name must be a non-empty string, got {name!r}")
        if predicate is not None and not callable(predicate):
            raise ConfigError(f"Predicate for '{name}' is not callable: {predicate!r}")
        self.name = name
        self.predicate = predicate

    def __eq__(self, other):
        return (type(other) is type(self)
                and self.name == other.name
                and self.predicate is other.predicate)

    def __hash__(self):
        return hash((type(self), self.name, id(self.predicate)))

    def __repr__(self) -> str:
        if self.predicate is None:
            return f"{type(self).__name__}({self.name!r})"
        pred_name = getattr(self.predicate, '__name__', repr(self.predicate))
        return f"{type(self).__name__}({self.name!r}, {pred_name})"


class Slot(_Variable):
    """Matches exactly one sub-expression and binds it to ``name``."""

    __slots__ = ()


class Segment(_Variable):
    """
    Matches a contiguous run of zero or more sibling arguments.

    The binding is a tuple; the predicate, if any, receives the whole tuple.
    """

    __slots__ = ()


class TermPattern(Pattern):
    """
    Matches an interior node whose operation equals ``operation`` and whose
    arguments are consumed by ``arguments``.

    ``operation`` may be a Slot, in which case the node's operation is bound
    to it.
    """

    __slots__ = ('operation', 'arguments', 'min_arity')

    def __init__(self, operation: Any, arguments: Sequence[Pattern]):
        self.operation = operation
        self.arguments = tuple(arguments)
        self.min_arity = sum(1 for a in self.arguments if not isinstance(a, Segment))

    def __eq__(self, other):
        return (isinstance(other, TermPattern)
                and self.operation == other.operation
                and self.arguments == other.arguments)

    def __hash__(self):
        return hash((TermPattern, repr(self.operation), self.arguments))

    def __repr__(self) -> str:
        args = ", ".join(repr(a) for a in self.arguments)
        return f"TermPattern({self.operation!r}, [{args}])"


def _collect_variables(pattern: Pattern, found: List[Pattern]) -> None:
    if isinstance(pattern, _Variable):
        found.append(pattern)
    elif isinstance(pattern, TermPattern):
        if isinstance(pattern.operation, Pattern):
            _collect_variables(pattern.operation, found)
        for arg in pattern.arguments:
            _collect_variables(arg, found)


# ============================================================
# Builders
# ============================================================

def slot(name: str, predicate: Optional[Predicate] = None) -> Slot:
    """Slot variable, for use inside pattern descriptions."""
    return Slot(name, predicate)


def segment(name: str, predicate: Optional[Predicate] = None) -> Segment:
    """Segment variable, for use inside pattern descriptions."""
    return Segment(name, predicate)


def term(operation: Any, *arguments: Any) -> TermPattern:
    """Term pattern; arguments may be uncompiled descriptions."""
    op = operation if isinstance(operation, Pattern) else _compile_operation(operation)
    return TermPattern(op, [_compile(a) for a in arguments])


# ============================================================
# Compiler
# ============================================================

def _marker(desc: Any) -> Optional[str]:
    if (isinstance(desc, list) and 2 <= len(desc) <= 3
            and isinstance(desc[0], str)
            and desc[0] in (SLOT_MARKER, SEGMENT_MARKER, CONSTANT_MARKER, VARIABLE_MARKER)):
        return desc[0]
    return None


def _compile_marker(desc: List) -> Pattern:
    kind = desc[0]
    name = desc[1]
    predicate = desc[2] if len(desc) == 3 else None

    if kind == SLOT_MARKER:
        return Slot(name, predicate)
    if kind == CONSTANT_MARKER:
        if predicate is not None:
            raise ConfigError(f"'{kind}' marker for '{name}' takes no predicate")
        return Slot(name, constant)
    if kind == VARIABLE_MARKER:
        if predicate is not None:
            raise ConfigError(f"'{kind}' marker for '{name}' takes no predicate")
        return Slot(name, variable)
    return Segment(name, predicate)


def _compile_operation(op: Any) -> Any:
    """Operations are plain values, or a slot binding the operation."""
    if _marker(op) is not None:
        op = _compile_marker(op)
    if isinstance(op, Segment):
        raise ConfigError(f"Segment '{op.name}' cannot stand in operation position")
    if isinstance(op, Pattern) and not isinstance(op, Slot):
        raise ConfigError(f"Only a slot may stand in operation position, got {op!r}")
    return op


def _compile(desc: Any) -> Pattern:
    if isinstance(desc, Pattern):
        return desc
    if _marker(desc) is not None:
        return _compile_marker(desc)
    if isinstance(desc, list) and desc:
        return TermPattern(_compile_operation(desc[0]), [_compile(d) for d in desc[1:]])
    return Literal(desc)


def _validate(pattern: Pattern) -> None:
    if isinstance(pattern, Segment):
        raise ConfigError(
            f"Segment '{pattern.name}' must appear inside a term's argument list")

    kinds: Dict[str, type] = {}
    predicates: Dict[str, Predicate] = {}
    for var in pattern.variables():
        seen = kinds.setdefault(var.name, type(var))
        if seen is not type(var):
            raise ConfigError(
                f"Variable '{var.name}' is used both as a slot and as a segment")
        if var.predicate is None:
            continue
        existing = predicates.setdefault(var.name, var.predicate)
        if existing is not var.predicate:
            raise ConfigError(
                f"Variable '{var.name}' carries more than one predicate; "
                f"attach the predicate to a single occurrence")


def compile_pattern(description: Any) -> Pattern:
    """
    Compile a pre-parsed pattern description into a Pattern.

    Args:
        description: nested lists with slot/segment markers, builder objects,
            literals, or an already-compiled Pattern

    Returns:
        The compiled, validated Pattern.

    Raises:
        ConfigError: if a variable carries two different predicates, is used
            both as a slot and a segment, or a segment appears outside a
            term's argument list.
    """
    pattern = _compile(description)
    try:
        _validate(pattern)
    except ConfigError as exc:
        logger.debug("rejected pattern %r: %s", pattern, exc)
        raise
    return pattern


def pattern_variables(pattern: Pattern) -> Tuple[str, ...]:
    """Distinct variable names of a pattern, in order of first occurrence."""
    names: List[str] = []
    for var in pattern.variables():
        if var.name not in names:
            names.append(var.name)
    return tuple(names)
