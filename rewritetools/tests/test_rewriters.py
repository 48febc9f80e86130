"""Tests for the rewriter combinators."""

import pytest
from rewritetools import (
    make_rule, slot, segment, constant, NoMatch, E, Term, TERM,
    Rewriter, apply, Empty, Chain, RestartedChain, IfElse, If, PassThrough,
    Fixpoint, FixpointNoCycle, Postwalk, simplifier,
)


@pytest.fixture
def sqexpand():
    """(x + y)^2 => x^2 + 2xy + y^2"""
    return make_rule(
        ["^", ["+", slot("x"), slot("y")], 2],
        ["+", ["^", [":", "x"], 2], ["*", 2, [":", "x"], [":", "y"]], ["^", [":", "y"], 2]],
        name="sqexpand",
    )


@pytest.fixture
def pyid():
    """sin(x)^2 + cos(x)^2 => 1, anywhere inside a sum."""
    return make_rule(
        ["+", segment("a"), ["^", ["sin", slot("x")], 2],
         segment("b"), ["^", ["cos", slot("x")], 2], segment("c")],
        ["+", 1, [":...", "a"], [":...", "b"], [":...", "c"]],
        name="pyid",
    )


@pytest.fixture
def trig_square():
    return E("(^ (+ (sin a) (cos a)) 2)")


EXPANDED = E("(+ (^ (sin a) 2) (* 2 (sin a) (cos a)) (^ (cos a) 2))")
IDENTITY_APPLIED = E("(+ 1 (* 2 (sin a) (cos a)))")


def rename(src, dst):
    return make_rule(src, dst, name=f"{src}->{dst}")


class TestEmpty:
    """The Empty rewriter."""

    def test_always_nomatch(self):
        """Empty never matches."""
        assert Empty()(E("(+ x 1)")) is NoMatch
        assert Empty()(0) is NoMatch


class TestChain:
    """Chain folds the expression through every rewriter."""

    def test_order_pyid_first(self, pyid, sqexpand, trig_square):
        """pyid cannot apply before expansion."""
        assert Chain([pyid, sqexpand])(trig_square) == EXPANDED

    def test_order_sqexpand_first(self, pyid, sqexpand, trig_square):
        """Expanding first lets the Pythagorean identity fire."""
        assert Chain([sqexpand, pyid])(trig_square) == IDENTITY_APPLIED

    def test_never_nomatch(self):
        """A chain of failing rewriters returns its input."""
        expr = E("(f x)")
        assert Chain([Empty(), Empty()])(expr) == expr
        assert Chain([])(expr) == expr

    def test_falsy_expressions_survive(self):
        """A rewriter producing 0 is a success, not a failure."""
        to_zero = make_rule(["*", slot("x"), 0], 0)
        assert Chain([to_zero, Empty()])(E("(* y 0)")) == 0

    def test_each_step_sees_previous_result(self):
        """Results thread through the chain."""
        chain = Chain([rename("a", "b"), rename("b", "c")])
        assert chain("a") == "c"

    def test_plain_callables(self):
        """Any callable can be part of a chain."""
        chain = Chain([lambda e: e + 1, lambda e: NoMatch, lambda e: e * 10])
        assert chain(1) == 20

    def test_rshift_builds_chain(self, pyid, sqexpand, trig_square):
        """r1 >> r2 is Chain([r1, r2])."""
        chain = sqexpand >> pyid
        assert isinstance(chain, Chain)
        assert chain(trig_square) == IDENTITY_APPLIED

    def test_rshift_flattens(self):
        """Chaining chains does not nest them."""
        a, b, c = rename("a", "b"), rename("b", "c"), rename("c", "d")
        chain = (a >> b) >> c
        assert len(chain) == 3
        assert list(chain) == [a, b, c]
        assert (a >> (b >> c)).rewriters == (a, b, c)

    def test_rshift_with_plain_callable(self):
        """A plain function on the left uses the reflected operator."""
        chain = (lambda e: e + "!") >> rename("a!", "done")
        assert chain("a") == "done"


class TestPythagoreanOrdering:
    """Rule order matters for Chain but not for RestartedChain."""

    @pytest.fixture
    def square_sum(self):
        """(x + y)^2 => x^2 + y^2"""
        return make_rule(
            ["^", ["+", slot("x"), slot("y")], 2],
            ["+", ["^", [":", "x"], 2], ["^", [":", "y"], 2]],
            name="square-sum",
        )

    @pytest.fixture
    def identity(self):
        """sin(x)^2 + cos(x)^2 => 1"""
        return make_rule(
            ["+", ["^", ["sin", slot("x")], 2], ["^", ["cos", slot("x")], 2]],
            1,
            name="pythagorean",
        )

    def test_chain_expand_then_identity(self, square_sum, identity, trig_square):
        """Expanding first reduces the square to 1."""
        assert Chain([square_sum, identity])(trig_square) == 1

    def test_chain_identity_first(self, square_sum, identity, trig_square):
        """The identity cannot fire before the expansion."""
        expected = E("(+ (^ (sin a) 2) (^ (cos a) 2))")
        assert Chain([identity, square_sum])(trig_square) == expected

    def test_restarted_chain(self, square_sum, identity, trig_square):
        """Restarting after the expansion lets the identity fire."""
        assert RestartedChain([identity, square_sum])(trig_square) == 1


class TestRestartedChain:
    """RestartedChain goes back to the start after each success."""

    def test_recovers_from_order(self, pyid, sqexpand, trig_square):
        """The identity fires even though it is listed first."""
        assert RestartedChain([pyid, sqexpand])(trig_square) == IDENTITY_APPLIED

    def test_restart_reaches_earlier_rules(self):
        """Later successes re-enable earlier rewriters."""
        chain = RestartedChain([rename("b", "c"), rename("a", "b")])
        assert chain("a") == "c"
        assert Chain([rename("b", "c"), rename("a", "b")])("a") == "b"

    def test_never_nomatch(self):
        """Nothing applicable returns the input."""
        assert RestartedChain([Empty()])("x") == "x"
        assert RestartedChain([])("x") == "x"

    def test_restarts_from_first(self):
        """After a success, the scan restarts at the first rewriter."""
        calls = []

        def first(e):
            calls.append(("first", e))
            return NoMatch

        def countdown(e):
            calls.append(("countdown", e))
            return e - 1 if e > 0 else NoMatch

        assert RestartedChain([first, countdown])(2) == 0
        assert [name for name, _ in calls] == [
            "first", "countdown", "first", "countdown", "first", "countdown",
        ]


class TestIfElse:
    """Conditional dispatch."""

    def test_true_branch(self):
        """cond true applies the first rewriter."""
        rw = IfElse(constant, lambda e: e * 2, lambda e: "other")
        assert rw(21) == 42

    def test_false_branch(self):
        """cond false applies the second rewriter."""
        rw = IfElse(constant, lambda e: e * 2, lambda e: "other")
        assert rw("x") == "other"

    def test_propagates_nomatch(self):
        """The branch's NoMatch is returned as-is."""
        rw = IfElse(constant, Empty(), lambda e: e)
        assert rw(1) is NoMatch

    def test_if_without_else(self):
        """If(cond, rw) behaves like IfElse(cond, rw, Empty())."""
        rw = If(constant, lambda e: e + 1)
        assert rw(1) == 2
        assert rw("x") is NoMatch

    def test_repr(self):
        """Reprs name the parts."""
        assert repr(If(constant, Empty())) == "If(constant, Empty())"


class TestPassThrough:
    """PassThrough turns NoMatch into identity."""

    def test_identity_on_nomatch(self):
        """A failing rewriter leaves the expression unchanged."""
        expr = E("(g y)")
        assert PassThrough(Empty())(expr) == expr

    def test_result_on_success(self):
        """A succeeding rewriter's result is returned."""
        assert PassThrough(rename("a", "b"))("a") == "b"


class TestFixpoint:
    """Fixpoint iterates until nothing changes."""

    @pytest.fixture
    def countdown(self):
        return make_rule(
            ["n", slot("k", constant)],
            lambda b: ["n", b["k"] - 1] if b["k"] > 0 else NoMatch,
        )

    def test_runs_until_nomatch(self, countdown):
        """Iteration stops when the rewriter returns NoMatch."""
        assert Fixpoint(countdown)(["n", 5]) == ["n", 0]

    def test_convergence_property(self, countdown):
        """The result is stable under the rewriter."""
        result = Fixpoint(countdown)(["n", 3])
        again = countdown(result)
        assert again is NoMatch or again == result

    def test_runs_until_equal(self):
        """Iteration stops when the result equals the input."""
        clamp = lambda e: min(e + 1, 10)
        assert Fixpoint(clamp)(0) == 10

    def test_first_step_nomatch(self):
        """If nothing applies, the input is returned."""
        assert Fixpoint(Empty())("x") == "x"

    def test_uses_interface_equality(self):
        """Convergence uses the host's equality."""
        step = make_rule(["s", slot("x", constant)],
                         lambda b: Term("s", min(b["x"] + 1, 3)), interface=TERM)
        assert Fixpoint(step, interface=TERM)(Term("s", 0)) == Term("s", 3)

    def test_fixpoint_of_chain(self):
        """Fixpoint around a chain keeps chaining until stable."""
        rw = Fixpoint(Chain([rename("a", "b"), rename("c", "a")]))
        assert rw("c") == "b"


class TestFixpointNoCycle:
    """FixpointNoCycle stops on repeated states."""

    def test_two_cycle(self):
        """A swap rule terminates instead of looping."""
        swap = make_rule(["pair", slot("x"), slot("y")], ["pair", [":", "y"], [":", "x"]])
        assert FixpointNoCycle(swap)(["pair", 1, 2]) == ["pair", 2, 1]

    def test_behaves_like_fixpoint_when_converging(self):
        """Without cycles the result matches Fixpoint."""
        clamp = lambda e: min(e + 1, 4)
        assert FixpointNoCycle(clamp)(0) == Fixpoint(clamp)(0) == 4

    def test_nomatch(self):
        """NoMatch stops iteration."""
        assert FixpointNoCycle(Empty())("x") == "x"


class TestApply:
    """The apply() entry point."""

    def test_apply_rule(self):
        """apply(rw, expr) calls the rewriter."""
        assert apply(rename("a", "b"), "a") == "b"

    def test_apply_combinator(self):
        """apply works on combinators and plain callables alike."""
        assert apply(Empty(), "a") is NoMatch
        assert apply(lambda e: e * 2, 4) == 8

    def test_rewriter_base(self):
        """The base class is abstract."""
        with pytest.raises(NotImplementedError):
            Rewriter()("x")


class TestSimplifier:
    """The simplifier convenience driver."""

    def test_simplifies_everywhere(self):
        """Rules apply at every level until nothing changes."""
        add_zero = make_rule(["+", segment("xs"), 0], ["+", [":...", "xs"]])
        unary_plus = make_rule(["+", slot("x")], [":", "x"])
        mul_one = make_rule(["*", slot("x"), 1], [":", "x"])
        simplify = simplifier([add_zero, unary_plus, mul_one])
        assert simplify(E("(f (+ (* y 1) 0) (* (+ z 0) 1))")) == E("(f y z)")

    def test_matches_explicit_composition(self):
        """simplifier(rules) is Fixpoint(Postwalk(Chain(rules)))."""
        rules = [make_rule(["*", slot("x"), 1], [":", "x"])]
        expr = E("(* (* (* q 1) 1) 1)")
        assert simplifier(rules)(expr) == Fixpoint(Postwalk(Chain(rules)))(expr) == "q"
