"""
Pattern matching for rewritetools.

``match(pattern, expr)`` returns a ``Bindings`` object on success and the
``NoMatch`` singleton otherwise.  Matching is purely functional: the
expression is only inspected through its ExpressionInterface, and bindings
are extended by copying.

Segment variables are resolved greedily from the left: a segment first tries
to match nothing, then one argument, then two, and keeps the first length for
which everything after it matches.  That choice is final, so a term with
several segments yields the first solution found this way, not every
solution.
"""

from typing import Any, Dict, Mapping, Optional, Sequence

from .bindings import Bindings, NoMatch
from .expr import ExpressionInterface, ExprType, resolve_interface
from .pattern import (
    ConfigError, Literal, Pattern, Segment, Slot, TermPattern, compile_pattern,
)

_Env = Dict[str, Any]


def match(pattern: Any, expr: ExprType,
          interface: Optional[ExpressionInterface] = None,
          bindings: Optional[Mapping[str, Any]] = None):
    """
    Match a pattern against an expression.

    Args:
        pattern: a compiled Pattern, or a description accepted by
            ``compile_pattern``
        expr: the expression to match
        interface: host interface (default: nested lists)
        bindings: optional bindings the match must agree with

    Returns:
        Bindings if matched, NoMatch if not.

    Example:
        if b := match(["+", ["?", "a"], ["?", "a"]], ["+", "x", "x"]):
            b["a"]  # => "x"
    """
    if not isinstance(pattern, Pattern):
        pattern = compile_pattern(pattern)
    iface = resolve_interface(interface)
    env = match_pattern(pattern, expr, dict(bindings or {}), iface)
    if env is NoMatch:
        return NoMatch
    return Bindings(env)


def match_pattern(pattern: Pattern, expr: ExprType, env: _Env,
                  iface: ExpressionInterface):
    """Match one pattern node; returns the extended env or NoMatch."""
    if isinstance(pattern, Slot):
        return _bind_slot(pattern, expr, env, iface)

    if isinstance(pattern, TermPattern):
        if iface.is_leaf(expr):
            return NoMatch
        op = pattern.operation
        if isinstance(op, Slot):
            env = _bind_slot(op, iface.operation(expr), env, iface)
            if env is NoMatch:
                return NoMatch
        elif iface.operation(expr) != op:
            return NoMatch
        args = iface.arguments(expr)
        if len(args) < pattern.min_arity:
            return NoMatch
        return _match_arguments(pattern.arguments, 0, args, 0, env, iface)

    if isinstance(pattern, Literal):
        if iface.is_leaf(expr) and iface.equals(pattern.value, expr):
            return env
        return NoMatch

    if isinstance(pattern, Segment):
        raise ConfigError(
            f"Segment '{pattern.name}' must appear inside a term's argument list")
    raise TypeError(f"Not a pattern: {pattern!r}")


def _bind_slot(pattern: Slot, expr: ExprType, env: _Env, iface: ExpressionInterface):
    name = pattern.name
    if name in env:
        if not iface.equals(env[name], expr):
            return NoMatch
        if pattern.predicate is not None and not pattern.predicate(expr):
            return NoMatch
        return env
    if pattern.predicate is not None and not pattern.predicate(expr):
        return NoMatch
    extended = dict(env)
    extended[name] = expr
    return extended


def _bind_segment(pattern: Segment, run: tuple, env: _Env, iface: ExpressionInterface):
    name = pattern.name
    if name in env:
        bound = env[name]
        if len(bound) != len(run):
            return NoMatch
        if not all(iface.equals(a, b) for a, b in zip(bound, run)):
            return NoMatch
        if pattern.predicate is not None and not pattern.predicate(run):
            return NoMatch
        return env
    if pattern.predicate is not None and not pattern.predicate(run):
        return NoMatch
    extended = dict(env)
    extended[name] = run
    return extended


def _remaining_arity(patterns: Sequence[Pattern], i: int) -> int:
    return sum(1 for p in patterns[i:] if not isinstance(p, Segment))


def _match_arguments(patterns: Sequence[Pattern], i: int,
                     args: Sequence[ExprType], j: int,
                     env: _Env, iface: ExpressionInterface):
    """Match patterns[i:] against args[j:], consuming every argument."""
    while i < len(patterns):
        pat = patterns[i]

        if isinstance(pat, Segment):
            if pat.name in env:
                # Length fixed by the earlier binding.
                end = j + len(env[pat.name])
                if end > len(args):
                    return NoMatch
                env = _bind_segment(pat, tuple(args[j:end]), env, iface)
                if env is NoMatch:
                    return NoMatch
                i, j = i + 1, end
                continue

            longest = len(args) - _remaining_arity(patterns, i + 1)
            for end in range(j, longest + 1):
                extended = _bind_segment(pat, tuple(args[j:end]), env, iface)
                if extended is NoMatch:
                    continue
                result = _match_arguments(patterns, i + 1, args, end, extended, iface)
                if result is not NoMatch:
                    return result
            return NoMatch

        if j >= len(args):
            return NoMatch
        env = match_pattern(pat, args[j], env, iface)
        if env is NoMatch:
            return NoMatch
        i, j = i + 1, j + 1

    return env if j == len(args) else NoMatch
