"""
Tree walkers: apply a rewriter at every node of an expression.

    Prewalk(rw)   - rewrite a node, then walk the children of the result
    Postwalk(rw)  - walk the children, rebuild the node, then rewrite it

A walk succeeds only if ``rw`` succeeds at *every* node it visits, leaves
included; a single NoMatch anywhere makes the whole walk return NoMatch.
Wrap ``rw`` in PassThrough to rewrite whatever matches and leave the rest
alone:

    Postwalk(PassThrough(add_zero))(["f", ["+", "x", 0], "y"])  # => ["f", "x", "y"]

With ``threaded=True`` a walk owns one thread pool of at most
``max_workers`` threads.  The walk descends on the calling thread until it
reaches a node with several children whose subtree has more than
``thread_cutoff`` nodes; each child of that node becomes one task, walked
sequentially on a pool thread, and the results are recombined in their
original order.  Tasks never wait on other tasks.  Results are checked left
to right, so a threaded walk returns NoMatch or raises exactly when the
sequential walk would.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional

from .bindings import NoMatch
from .expr import ExpressionInterface, ExprType, node_count, resolve_interface
from .pattern import ConfigError
from .rewriters import Rewriter, RewriterType, _name

logger = logging.getLogger(__name__)

DEFAULT_THREAD_CUTOFF = 100

_OPTION_NAMES = ('threaded', 'thread_cutoff', 'max_workers')


class WalkOptions:
    """
    Traversal options shared by Prewalk and Postwalk.

    Attributes:
        threaded: walk large subtrees concurrently
        thread_cutoff: subtrees with at most this many nodes are never forked
        max_workers: threads in the walk's pool (default: ThreadPoolExecutor's)
    """

    def __init__(self, threaded: bool = False,
                 thread_cutoff: int = DEFAULT_THREAD_CUTOFF,
                 max_workers: Optional[int] = None):
        if isinstance(thread_cutoff, bool) or not isinstance(thread_cutoff, int) \
                or thread_cutoff < 0:
            raise ConfigError(
                f"thread_cutoff must be a non-negative integer, got {thread_cutoff!r}")
        if max_workers is not None and (not isinstance(max_workers, int) or max_workers < 1):
            raise ConfigError(f"max_workers must be a positive integer, got {max_workers!r}")
        self.threaded = bool(threaded)
        self.thread_cutoff = thread_cutoff
        self.max_workers = max_workers

    def __eq__(self, other):
        if not isinstance(other, WalkOptions):
            return NotImplemented
        return all(getattr(self, n) == getattr(other, n) for n in _OPTION_NAMES)

    def __repr__(self) -> str:
        return (f"WalkOptions(threaded={self.threaded}, "
                f"thread_cutoff={self.thread_cutoff}, max_workers={self.max_workers})")


class _Walker(Rewriter):

    __slots__ = ('rw', 'options', 'interface')

    def __init__(self, rw: RewriterType, options: Optional[WalkOptions] = None,
                 interface: Optional[ExpressionInterface] = None, **overrides: Any):
        options = options if options is not None else WalkOptions()
        if overrides:
            unknown = set(overrides) - set(_OPTION_NAMES)
            if unknown:
                raise ConfigError(f"Unknown walk option(s): {', '.join(sorted(unknown))}")
            fields = {n: getattr(options, n) for n in _OPTION_NAMES}
            fields.update(overrides)
            options = WalkOptions(**fields)
        self.rw = rw
        self.options = options
        self.interface = resolve_interface(interface)

    def __call__(self, expr: ExprType):
        if not self.options.threaded:
            return self._walk(expr, None)
        with ThreadPoolExecutor(max_workers=self.options.max_workers) as pool:
            return self._walk(expr, pool)

    def _walk(self, expr: ExprType, pool: Optional[ThreadPoolExecutor]):
        raise NotImplementedError

    def _walk_children(self, node: ExprType, pool: Optional[ThreadPoolExecutor]):
        """Walk every argument of ``node``; a list of results, or NoMatch."""
        args = self.interface.arguments(node)
        if pool is not None:
            cutoff = self.options.thread_cutoff
            if node_count(node, self.interface, limit=cutoff) <= cutoff:
                # Every subtree below is smaller still.
                pool = None
            elif len(args) > 1:
                return self._walk_forked(args, pool)

        results: List[ExprType] = []
        for arg in args:
            result = self._walk(arg, pool)
            if result is NoMatch:
                return NoMatch
            results.append(result)
        return results

    def _walk_forked(self, args, pool: ThreadPoolExecutor):
        logger.debug("%s forking %d subtrees", type(self).__name__, len(args))
        futures = [pool.submit(self._walk, arg, None) for arg in args]
        try:
            results: List[ExprType] = []
            for future in futures:
                result = future.result()
                if result is NoMatch:
                    return NoMatch
                results.append(result)
            return results
        finally:
            for future in futures:
                future.cancel()

    def __repr__(self) -> str:
        if self.options.threaded:
            return (f"{type(self).__name__}({_name(self.rw)}, threaded=True, "
                    f"thread_cutoff={self.options.thread_cutoff})")
        return f"{type(self).__name__}({_name(self.rw)})"


class Prewalk(_Walker):
    """
    Rewrite top-down: apply ``rw`` at a node, then walk the children of the
    node it returned.
    """

    __slots__ = ()

    def _walk(self, expr: ExprType, pool: Optional[ThreadPoolExecutor]):
        result = self.rw(expr)
        if result is NoMatch:
            return NoMatch
        iface = self.interface
        if iface.is_leaf(result):
            return result
        children = self._walk_children(result, pool)
        if children is NoMatch:
            return NoMatch
        return iface.construct(iface.operation(result), children)


class Postwalk(_Walker):
    """
    Rewrite bottom-up: walk the children, rebuild the node from the walked
    children, then apply ``rw`` to the rebuilt node.
    """

    __slots__ = ()

    def _walk(self, expr: ExprType, pool: Optional[ThreadPoolExecutor]):
        iface = self.interface
        if iface.is_leaf(expr):
            return self.rw(expr)
        children = self._walk_children(expr, pool)
        if children is NoMatch:
            return NoMatch
        return self.rw(iface.construct(iface.operation(expr), children))
