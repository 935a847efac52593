from __future__ import annotations

import pytest

from vmtranslator.lowering import ELIGIBLE, LoweringPolicy, Strategy


def test_inline_preset_shares_nothing():
    policy = LoweringPolicy.inline()
    assert policy.shared_routines() == ()
    assert policy.strategy("add") is Strategy.INLINE


def test_subroutine_preset_shares_every_eligible_kind():
    policy = LoweringPolicy.subroutine()
    assert policy.shared_routines() == ELIGIBLE
    assert policy.uses_subroutine("push_local")
    assert policy.uses_subroutine("call")


def test_mixed_preset_keeps_arithmetic_inline():
    policy = LoweringPolicy.mixed()
    assert policy.uses_subroutine("pop_that")
    assert policy.uses_subroutine("return")
    assert not policy.uses_subroutine("add")
    assert not policy.uses_subroutine("eq")


@pytest.mark.parametrize("routine", ["neg", "not", "push_constant", "pop_static", "push_temp", "label", "function"])
def test_non_eligible_kinds_always_inline(routine):
    policy = LoweringPolicy(table={routine: Strategy.SUBROUTINE})
    assert policy.strategy(routine) is Strategy.INLINE


def test_with_subroutines_rejects_non_eligible():
    with pytest.raises(ValueError):
        LoweringPolicy.with_subroutines(["add", "neg"])


def test_preset_lookup():
    assert LoweringPolicy.preset("mixed", optimized=False) == LoweringPolicy.mixed(optimized=False)
    with pytest.raises(ValueError):
        LoweringPolicy.preset("fastest")
