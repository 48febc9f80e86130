"""
Rewriter combinators for rewritetools.

A rewriter is any callable taking an expression and returning either a new
expression or ``NoMatch`` ("nothing to do here").  Rules are rewriters, and
the classes below build bigger rewriters out of smaller ones:

    Empty()                   - always NoMatch
    Chain([r1, r2, ...])      - thread the expression through every rewriter
    RestartedChain([...])     - like Chain, restarting after every success
    IfElse(cond, r1, r2)      - dispatch on a predicate of the expression
    If(cond, r)               - IfElse(cond, r, Empty())
    PassThrough(r)            - NoMatch becomes "unchanged"
    Fixpoint(r)               - apply r until it stops changing the expression
    FixpointNoCycle(r)        - Fixpoint that also stops on a repeated state

Tree walkers (Prewalk, Postwalk) live in ``rewritetools.walkers``.

Example:
    normalize = Fixpoint(Postwalk(Chain([add_zero, mul_one])))
    normalize(["+", ["*", "x", 1], 0])  # => "x"
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .bindings import NoMatch
from .expr import ExpressionInterface, ExprType, resolve_interface

logger = logging.getLogger(__name__)

RewriterType = Callable[[ExprType], Any]


def apply(rewriter: RewriterType, expr: ExprType):
    """Apply a rewriter to an expression; returns an expression or NoMatch."""
    return rewriter(expr)


class Rewriter:
    """
    Base class of the combinators.

    ``r1 >> r2`` builds ``Chain([r1, r2])``.
    """

    __slots__ = ()

    def __call__(self, expr: ExprType):
        raise NotImplementedError

    def apply(self, expr: ExprType):
        return self(expr)

    def __rshift__(self, other: RewriterType) -> 'Chain':
        left = list(self.rewriters) if isinstance(self, Chain) else [self]
        right = list(other.rewriters) if isinstance(other, Chain) else [other]
        return Chain(left + right)

    def __rrshift__(self, other: RewriterType) -> 'Chain':
        right = list(self.rewriters) if isinstance(self, Chain) else [self]
        return Chain([other] + right)


def _name(rw: Any) -> str:
    if isinstance(rw, Rewriter):
        return repr(rw)
    return getattr(rw, '__name__', repr(rw))


class Empty(Rewriter):
    """Rewriter that never matches."""

    __slots__ = ()

    def __call__(self, expr: ExprType):
        return NoMatch

    def __repr__(self) -> str:
        return "Empty()"


class Chain(Rewriter):
    """
    Apply each rewriter in turn to the running result.

    A rewriter returning NoMatch leaves the running result unchanged.  The
    chain itself never returns NoMatch.
    """

    __slots__ = ('rewriters',)

    def __init__(self, rewriters: Iterable[RewriterType]):
        self.rewriters: Tuple[RewriterType, ...] = tuple(rewriters)

    def __call__(self, expr: ExprType):
        for rw in self.rewriters:
            result = rw(expr)
            if result is not NoMatch:
                expr = result
        return expr

    def __len__(self) -> int:
        return len(self.rewriters)

    def __iter__(self):
        return iter(self.rewriters)

    def __repr__(self) -> str:
        return f"Chain([{', '.join(_name(rw) for rw in self.rewriters)}])"


class RestartedChain(Rewriter):
    """
    Like Chain, but go back to the first rewriter after every success.

    Stops after a full pass in which every rewriter returned NoMatch, and
    returns the running result (never NoMatch).  A rewriter that keeps
    succeeding keeps the chain running.
    """

    __slots__ = ('rewriters',)

    def __init__(self, rewriters: Iterable[RewriterType]):
        self.rewriters: Tuple[RewriterType, ...] = tuple(rewriters)

    def __call__(self, expr: ExprType):
        restarts = 0
        restart = True
        while restart:
            restart = False
            for rw in self.rewriters:
                result = rw(expr)
                if result is not NoMatch:
                    expr = result
                    restart = True
                    restarts += 1
                    break
        logger.debug("%r settled after %d restarts", self, restarts)
        return expr

    def __repr__(self) -> str:
        return f"RestartedChain([{', '.join(_name(rw) for rw in self.rewriters)}])"


class IfElse(Rewriter):
    """Apply ``yes`` when ``cond(expr)`` holds, otherwise ``no``."""

    __slots__ = ('cond', 'yes', 'no')

    def __init__(self, cond: Callable[[ExprType], bool],
                 yes: RewriterType, no: RewriterType):
        self.cond = cond
        self.yes = yes
        self.no = no

    def __call__(self, expr: ExprType):
        if self.cond(expr):
            return self.yes(expr)
        return self.no(expr)

    def __repr__(self) -> str:
        return f"IfElse({_name(self.cond)}, {_name(self.yes)}, {_name(self.no)})"


class If(IfElse):
    """Apply ``rw`` when ``cond(expr)`` holds, otherwise NoMatch."""

    __slots__ = ()

    def __init__(self, cond: Callable[[ExprType], bool], rw: RewriterType):
        super().__init__(cond, rw, Empty())

    def __repr__(self) -> str:
        return f"If({_name(self.cond)}, {_name(self.yes)})"


class PassThrough(Rewriter):
    """Apply ``rw``; when it returns NoMatch, return the input unchanged."""

    __slots__ = ('rw',)

    def __init__(self, rw: RewriterType):
        self.rw = rw

    def __call__(self, expr: ExprType):
        result = self.rw(expr)
        return expr if result is NoMatch else result

    def __repr__(self) -> str:
        return f"PassThrough({_name(self.rw)})"


class Fixpoint(Rewriter):
    """
    Apply ``rw`` repeatedly until it returns NoMatch or an expression equal
    to its input, and return the last expression.

    There is no iteration cap: ``rw`` must converge.
    """

    __slots__ = ('rw', 'interface')

    def __init__(self, rw: RewriterType,
                 interface: Optional[ExpressionInterface] = None):
        self.rw = rw
        self.interface = resolve_interface(interface)

    def __call__(self, expr: ExprType):
        equals = self.interface.equals
        steps = 0
        while True:
            result = self.rw(expr)
            if result is NoMatch or equals(result, expr):
                break
            expr = result
            steps += 1
        logger.debug("%r converged after %d steps", self, steps)
        return expr

    def __repr__(self) -> str:
        return f"{type(self).__name__}({_name(self.rw)})"


class FixpointNoCycle(Fixpoint):
    """
    Fixpoint that also stops when ``rw`` produces an expression it has
    already produced during this call, returning the expression that led
    back into the cycle.
    """

    __slots__ = ()

    def __call__(self, expr: ExprType):
        equals = self.interface.equals
        seen: List[ExprType] = [expr]
        while True:
            result = self.rw(expr)
            if result is NoMatch or equals(result, expr):
                return expr
            if any(equals(result, old) for old in seen):
                logger.debug("%r detected a cycle after %d steps", self, len(seen))
                return expr
            seen.append(result)
            expr = result


def simplifier(rules: Iterable[RewriterType],
               interface: Optional[ExpressionInterface] = None) -> Fixpoint:
    """
    Rewrite everywhere until nothing changes.

    Equivalent to ``Fixpoint(Postwalk(Chain(rules)))``: every node is
    rewritten bottom-up by the first applicable rules, and the whole pass is
    repeated until the expression stops changing.

    Example:
        simplify = simplifier([add_zero, mul_one])
        simplify(["+", ["*", "x", 1], 0])  # => "x"
    """
    from .walkers import Postwalk

    iface = resolve_interface(interface)
    return Fixpoint(Postwalk(Chain(rules), interface=iface), interface=iface)
