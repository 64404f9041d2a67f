from __future__ import annotations

from basetoken.token import MAX_SUPPLY, TokenInfo

from .conftest import E18, INITIAL_SUPPLY


def test_token_info_fields(token):
    info = token.get_token_info()
    assert isinstance(info, TokenInfo)
    assert info == TokenInfo("Base Ecosystem Token", "BET", 18, INITIAL_SUPPLY, MAX_SUPPLY)
    assert info._asdict()["max_supply"] == MAX_SUPPLY


def test_token_info_is_idempotent_and_side_effect_free(token):
    seen = []
    token.subscribe(seen.append)
    before = token.snapshot()
    first = token.get_token_info()
    second = token.get_token_info()
    assert first == second
    assert token.snapshot() == before
    assert seen == []
    assert len(list(token.events())) == 3


def test_token_info_tracks_supply(token, accounts):
    token.mint(accounts["owner"], accounts["alice"], 5 * E18)
    token.burn(accounts["alice"], 2 * E18)
    assert token.get_token_info().total_supply == INITIAL_SUPPLY + 3 * E18
