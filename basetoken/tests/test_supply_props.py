"""
Property tests: supply accounting holds for arbitrary call sequences.

Each generated step is applied to the token; rejected steps must leave the
state exactly as it was, accepted steps must keep `total_supply` equal to the
sum of balances and never above the cap.
"""
from __future__ import annotations

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from basetoken.errors import TokenError
from basetoken.token import BaseToken

from .conftest import det_address

OWNER = det_address("props:owner")
USERS = [det_address(f"props:user{i}") for i in range(4)]
ACTORS = [OWNER] + USERS
CAP = 10_000

amounts = st.integers(min_value=0, max_value=CAP + 500)
actors = st.sampled_from(ACTORS)

steps = st.one_of(
    st.tuples(st.just("mint"), actors, actors, amounts),
    st.tuples(st.just("burn"), actors, amounts),
    st.tuples(st.just("burn_from"), actors, actors, amounts),
    st.tuples(st.just("transfer"), actors, actors, amounts),
    st.tuples(st.just("approve"), actors, actors, amounts),
    st.tuples(st.just("transfer_from"), actors, actors, actors, amounts),
)

PROFILE = settings(
    max_examples=60,
    deadline=None,
    suppress_health_check=(HealthCheck.too_slow,),
)


def _apply(tok: BaseToken, step) -> None:
    op, *args = step
    getattr(tok, op)(*args)


@PROFILE
@given(initial=st.integers(min_value=0, max_value=CAP), ops=st.lists(steps, max_size=40))
def test_supply_invariants_hold(initial, ops):
    tok = BaseToken("Prop", "PRP", initial, OWNER, max_supply=CAP)
    for step in ops:
        before = tok.snapshot()
        try:
            _apply(tok, step)
        except TokenError:
            assert tok.snapshot() == before
        assert tok.invariant_violations() == []
        assert tok.total_supply() <= CAP
        assert tok.total_supply() == sum(b for _, b in tok.holders())


@PROFILE
@given(mints=st.lists(st.integers(min_value=0, max_value=CAP), max_size=30))
def test_first_mint_over_cap_rejected(mints):
    tok = BaseToken("Prop", "PRP", 0, OWNER, max_supply=CAP)
    for amount in mints:
        before = tok.total_supply()
        if before + amount > CAP:
            try:
                tok.mint(OWNER, USERS[0], amount)
            except TokenError as e:
                assert e.code == "SUPPLY_CAP_EXCEEDED"
            else:
                raise AssertionError("mint over the cap was accepted")
            assert tok.total_supply() == before
        else:
            tok.mint(OWNER, USERS[0], amount)
            assert tok.total_supply() == before + amount


@PROFILE
@given(amount=st.integers(min_value=0, max_value=CAP), caller=st.sampled_from(USERS))
def test_non_owner_mint_never_changes_balances(amount, caller):
    tok = BaseToken("Prop", "PRP", 100, OWNER, max_supply=CAP)
    before = tok.snapshot()
    try:
        tok.mint(caller, caller, amount)
    except TokenError as e:
        assert e.code == "UNAUTHORIZED"
    else:
        raise AssertionError("non-owner mint was accepted")
    assert tok.snapshot() == before


@PROFILE
@given(
    held=st.integers(min_value=0, max_value=CAP),
    granted=st.integers(min_value=0, max_value=CAP),
    amount=st.integers(min_value=0, max_value=CAP),
)
def test_burn_from_is_all_or_nothing(held, granted, amount):
    holder, spender = USERS[0], USERS[1]
    tok = BaseToken("Prop", "PRP", CAP, OWNER, max_supply=CAP)
    tok.transfer(OWNER, holder, held)
    tok.approve(holder, spender, granted)
    try:
        tok.burn_from(spender, holder, amount)
    except TokenError:
        assert tok.allowance(holder, spender) == granted
        assert tok.balance_of(holder) == held
        assert amount > granted or amount > held
    else:
        assert tok.allowance(holder, spender) == granted - amount
        assert tok.balance_of(holder) == held - amount
        assert tok.total_supply() == CAP - amount
