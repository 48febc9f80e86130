#!/usr/bin/env python3
"""
rewritetools Feature Demonstration

This script walks through the main features of the rewritetools library.
"""

import logging

from rewritetools import (
    E, Term, TERM, SExprInterface, format_sexpr,
    make_rule, slot, segment, constant, match, NoMatch,
    Chain, RestartedChain, If, PassThrough, Fixpoint, FixpointNoCycle,
    Prewalk, Postwalk, simplifier, compose, flatten, fold_constants,
)
from custom_prelude import PRELUDE


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def show(result):
    return "NoMatch" if result is NoMatch else format_sexpr(result)


def demo_matching():
    """Demonstrate slots, segments and predicates."""
    section("Pattern Matching")

    examples = [
        (["+", slot("x"), 0], "(+ y 0)"),
        (["f", slot("x"), slot("x")], "(f a b)"),
        (["+", segment("pre"), ["^", ["sin", slot("x")], 2], segment("post")],
         "(+ a b (^ (sin z) 2) c)"),
        (["*", slot("n", constant), slot("x")], "(* 3 q)"),
    ]

    for pattern, expr_str in examples:
        bindings = match(pattern, E(expr_str))
        print(f"  {expr_str} => {bindings!r}")


def demo_rules():
    """Demonstrate rules with functions and skeletons."""
    section("Rules")

    double_angle = make_rule(
        ["sin", ["*", 2, slot("x")]],
        lambda b: ["*", 2, ["sin", b["x"]], ["cos", b["x"]]],
        name="sin-double-angle",
    )
    abs_pos = make_rule(["abs", slot("x", constant)], [":", "x"],
                        name="abs-pos", condition=lambda b: b["x"] >= 0)

    for rule, expr_str in [(double_angle, "(sin (* 2 z))"),
                           (double_angle, "(sin (* 3 z))"),
                           (abs_pos, "(abs 5)"),
                           (abs_pos, "(abs -5)")]:
        print(f"  {rule.label}: {expr_str} => {show(rule(E(expr_str)))}")


def demo_chains():
    """Demonstrate rule ordering with Chain and RestartedChain."""
    section("Chains")

    sqexpand = make_rule(
        ["^", ["+", slot("x"), slot("y")], 2],
        ["+", ["^", [":", "x"], 2], ["*", 2, [":", "x"], [":", "y"]], ["^", [":", "y"], 2]],
        name="sqexpand",
    )
    pyid = make_rule(
        ["+", segment("a"), ["^", ["sin", slot("x")], 2],
         segment("b"), ["^", ["cos", slot("x")], 2], segment("c")],
        ["+", 1, [":...", "a"], [":...", "b"], [":...", "c"]],
        name="pyid",
    )

    expr = E("(^ (+ (sin a) (cos a)) 2)")
    print(f"  Expression: {format_sexpr(expr)}")
    print(f"  Chain([pyid, sqexpand]):          {show(Chain([pyid, sqexpand])(expr))}")
    print(f"  sqexpand >> pyid:                 {show((sqexpand >> pyid)(expr))}")
    print(f"  RestartedChain([pyid, sqexpand]): {show(RestartedChain([pyid, sqexpand])(expr))}")


def demo_walkers():
    """Demonstrate tree walkers and their all-levels rule."""
    section("Walkers")

    add_zero = make_rule(["+", slot("x"), 0], [":", "x"], name="add-zero")
    expr = E("(f (+ y 0) (g (+ z 0)))")

    print(f"  Expression: {format_sexpr(expr)}")
    print(f"  Postwalk(add_zero):              {show(Postwalk(add_zero)(expr))}")
    print(f"  Postwalk(PassThrough(add_zero)): {show(Postwalk(PassThrough(add_zero))(expr))}")
    print(f"  Prewalk(PassThrough(add_zero)):  {show(Prewalk(PassThrough(add_zero))(expr))}")

    threaded = Postwalk(PassThrough(add_zero), threaded=True, thread_cutoff=0)
    print(f"  {threaded!r}: {show(threaded(expr))}")


def demo_fixpoints():
    """Demonstrate Fixpoint, FixpointNoCycle and the simplifier driver."""
    section("Fixpoints")

    simplify = simplifier([
        make_rule(["+", segment("xs"), 0], ["+", [":...", "xs"]]),
        make_rule(["+", slot("x")], [":", "x"]),
        make_rule(["*", slot("x"), 1], [":", "x"]),
    ])
    expr = E("(f (+ (* y 1) 0) (* (+ z 0) 1))")
    print(f"  simplify {format_sexpr(expr)} => {show(simplify(expr))}")

    swap = make_rule(["pair", slot("x"), slot("y")], ["pair", [":", "y"], [":", "x"]])
    print(f"  FixpointNoCycle(swap) (pair 1 2) => {show(FixpointNoCycle(swap)(E('(pair 1 2)')))}")

    only_numbers = If(constant, lambda n: n // 2 if n > 1 else NoMatch)
    print(f"  Fixpoint(halve) 40 => {Fixpoint(only_numbers)(40)}")


def demo_hosts():
    """Demonstrate Term expressions and normalization hooks."""
    section("Expression Hosts")

    add_zero = make_rule(["+", slot("x"), 0], [":", "x"], interface=TERM)
    expr = Term("f", Term("+", "y", 0), "z")
    walk = Postwalk(PassThrough(add_zero), interface=TERM)
    print(f"  Term host: {expr!r} => {walk(expr)!r}")

    iface = SExprInterface(normalize=compose(flatten({"+", "*"}), fold_constants(PRELUDE)))
    double = make_rule(["double", slot("x")], ["+", [":", "x"], [":", "x"]], interface=iface)
    for expr_str in ["(double 4)", "(double (+ a b))"]:
        print(f"  Folding host: {expr_str} => {show(double(E(expr_str)))}")

    rebuild = Postwalk(lambda e: e, interface=iface)
    for expr_str in ["(gcd 12 (* 2 4))", "(max (factorial 3) 5)", "(mod x 3)"]:
        print(f"  Custom prelude: {expr_str} => {show(rebuild(E(expr_str)))}")


def main():
    """Run all demonstrations."""
    logging.basicConfig(level=logging.INFO)

    print("rewritetools - pattern matching and composable term rewriting")
    print("Feature Demonstration")

    demo_matching()
    demo_rules()
    demo_chains()
    demo_walkers()
    demo_fixpoints()
    demo_hosts()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
