"""
Rules: a compiled pattern plus a consequent.

    from rewritetools import make_rule, slot

    double_angle = make_rule(
        ["sin", ["*", 2, slot("x")]],
        lambda b: ["*", 2, ["sin", b["x"]], ["cos", b["x"]]],
        name="sin-double-angle",
    )

    double_angle(["sin", ["*", 2, "z"]])  # => ["*", 2, ["sin", "z"], ["cos", "z"]]
    double_angle(["sin", ["*", 3, "z"]])  # => NoMatch

The consequent may also be a skeleton template, instantiated against the
bindings:

    [":", "x"]      - substitute the value bound to x
    [":...", "xs"]  - splice the run bound to segment xs into the parent
    [op, ...]       - build a node with interface.construct
    anything else   - kept as-is

so the rule above can be written

    make_rule(["sin", ["*", 2, ["?", "x"]]],
              ["*", 2, ["sin", [":", "x"]], ["cos", [":", "x"]]])
"""

import logging
from typing import Any, Callable, List, Optional

from .bindings import Bindings, NoMatch
from .expr import ExpressionInterface, ExprType, format_sexpr, resolve_interface
from .matcher import match_pattern
from .pattern import ConfigError, Pattern, compile_pattern, pattern_variables
from .rewriters import Rewriter

logger = logging.getLogger(__name__)

SUBSTITUTE_MARKER = ":"
SPLICE_MARKER = ":..."

ConsequentType = Callable[[Bindings], ExprType]


# ============================================================
# Instantiation
# ============================================================

def _skeleton_marker(s: Any) -> Optional[str]:
    if (isinstance(s, list) and len(s) == 2 and isinstance(s[1], str)
            and s[0] in (SUBSTITUTE_MARKER, SPLICE_MARKER)):
        return s[0]
    return None


def _lookup(name: str, bindings) -> Any:
    if name not in bindings:
        raise KeyError(f"Skeleton refers to unbound variable '{name}'")
    return bindings[name]


def instantiate(skeleton: Any, bindings,
                interface: Optional[ExpressionInterface] = None) -> ExprType:
    """
    Instantiate a skeleton template with bindings.

    Args:
        skeleton: the template (see module docstring)
        bindings: Bindings or any mapping from names to values
        interface: host used to build compound nodes (default: nested lists)

    Returns:
        The instantiated expression.

    Raises:
        KeyError: if the skeleton refers to an unbound variable
        ValueError: if a splice appears outside an argument list
    """
    iface = resolve_interface(interface)

    def build(s: Any) -> ExprType:
        marker = _skeleton_marker(s)
        if marker == SUBSTITUTE_MARKER:
            return _lookup(s[1], bindings)
        if marker == SPLICE_MARKER:
            raise ValueError(f"Splice ':...{s[1]}' must appear inside an argument list")
        if isinstance(s, list) and s:
            args: List[ExprType] = []
            for item in s[1:]:
                if _skeleton_marker(item) == SPLICE_MARKER:
                    args.extend(_lookup(item[1], bindings))
                else:
                    args.append(build(item))
            return iface.construct(build(s[0]), args)
        return s

    return build(skeleton)


def skeleton(template: Any,
             interface: Optional[ExpressionInterface] = None) -> ConsequentType:
    """Turn a skeleton template into a consequent function."""
    def consequent(bindings: Bindings) -> ExprType:
        return instantiate(template, bindings, interface)
    consequent.template = template
    return consequent


# ============================================================
# Rule
# ============================================================

class Rule(Rewriter):
    """
    The primitive rewriter: pattern => consequent.

    Args:
        pattern: compiled Pattern or description for ``compile_pattern``
        consequent: function Bindings -> expression, or a skeleton template
        name: optional rule name (used in repr and debug logs)
        description: optional human-readable description
        condition: optional guard, function Bindings -> bool; a false guard
            makes the rule return NoMatch
        interface: host interface (default: nested lists)

    Calling the rule returns the consequent's result, or NoMatch when the
    pattern does not match, the guard fails, or the consequent itself
    returns NoMatch.
    """

    __slots__ = ('pattern', 'consequent', 'name', 'description',
                 'condition', 'interface')

    def __init__(self, pattern: Any, consequent: Any,
                 name: Optional[str] = None,
                 description: Optional[str] = None,
                 condition: Optional[Callable[[Bindings], bool]] = None,
                 interface: Optional[ExpressionInterface] = None):
        iface = resolve_interface(interface)
        compiled = compile_pattern(pattern)
        if not callable(consequent):
            consequent = skeleton(consequent, iface)
        if condition is not None and not callable(condition):
            raise ConfigError(f"Rule condition must be callable, got {condition!r}")
        self.pattern: Pattern = compiled
        self.consequent: ConsequentType = consequent
        self.name = name
        self.description = description
        self.condition = condition
        self.interface = iface

    def __call__(self, expr: ExprType):
        env = match_pattern(self.pattern, expr, {}, self.interface)
        if env is NoMatch:
            return NoMatch
        bindings = Bindings(env)
        if self.condition is not None and not self.condition(bindings):
            return NoMatch
        result = self.consequent(bindings)
        if result is not NoMatch and logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s: %s -> %s", self.label, format_sexpr(expr), format_sexpr(result))
        return result

    @property
    def label(self) -> str:
        return self.name or "<anonymous rule>"

    @property
    def variables(self):
        """Distinct variable names in the pattern."""
        return pattern_variables(self.pattern)

    def __repr__(self) -> str:
        base = f"@{self.name}" if self.name else "Rule"
        if self.description:
            base += f" \"{self.description}\""
        template = getattr(self.consequent, 'template', None)
        if template is not None:
            return f"{base}({self.pattern!r} => {format_sexpr(template)})"
        return f"{base}({self.pattern!r})"


def make_rule(pattern: Any, consequent: Any, **kwargs) -> Rule:
    """Build a Rule; keyword arguments are passed to ``Rule``."""
    return Rule(pattern, consequent, **kwargs)
