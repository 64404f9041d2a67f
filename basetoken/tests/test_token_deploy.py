from __future__ import annotations

import pytest

from basetoken.config import load_config
from basetoken.errors import InvalidAddress, InvalidAmount, InvalidMetadata, SupplyCapExceeded
from basetoken.state.events import InMemoryEventSink
from basetoken.stdlib.token import ZERO_ADDRESS
from basetoken.token import (EVT_TOKENS_MINTED, MAX_SUPPLY, BaseToken,
                             derive_token_address)

from .conftest import E18, INITIAL_SUPPLY


def test_max_supply_constant():
    assert MAX_SUPPLY == 1_000_000_000 * 10**18
    assert BaseToken.MAX_SUPPLY == MAX_SUPPLY


def test_initial_supply_goes_to_owner(token, accounts):
    assert token.balance_of(accounts["owner"]) == INITIAL_SUPPLY
    assert token.total_supply() == INITIAL_SUPPLY
    assert token.owner() == accounts["owner"]
    assert token.name() == "Base Ecosystem Token"
    assert token.symbol() == "BET"
    assert token.decimals() == 18
    assert token.max_supply() == MAX_SUPPLY
    assert token.invariant_violations() == []


def test_deploy_events(token, accounts):
    owner = accounts["owner"]
    names = [e.name for e in token.deploy_receipt.events]
    assert names == ["OwnershipTransferred", "Transfer", EVT_TOKENS_MINTED]

    own, xfer, minted = token.deploy_receipt.events
    assert own.args == {"previous_owner": ZERO_ADDRESS, "new_owner": owner}
    assert xfer.args == {"from": ZERO_ADDRESS, "to": owner, "value": INITIAL_SUPPLY}
    assert minted.args == {"to": owner, "amount": INITIAL_SUPPLY}
    assert token.deploy_receipt.seq == 1


def test_initial_supply_above_cap_rejected(accounts):
    with pytest.raises(SupplyCapExceeded):
        BaseToken("Capped", "CAP", 101, accounts["owner"], max_supply=100)


def test_initial_supply_equal_to_cap(accounts):
    tok = BaseToken("Capped", "CAP", 100, accounts["owner"], max_supply=100)
    assert tok.total_supply() == tok.max_supply() == 100
    assert tok.MAX_SUPPLY == 100


def test_zero_initial_supply(accounts):
    tok = BaseToken("Empty", "EMT", 0, accounts["owner"])
    assert tok.total_supply() == 0
    assert tok.holders() == []
    assert tok.deploy_receipt.find(EVT_TOKENS_MINTED)[0]["amount"] == 0


@pytest.mark.parametrize(
    "kwargs, exc",
    [
        (dict(name=""), InvalidMetadata),
        (dict(name="x" * 65), InvalidMetadata),
        (dict(symbol=""), InvalidMetadata),
        (dict(symbol="TOOLONGSYMBOL"), InvalidMetadata),
        (dict(name="bad\nname"), InvalidMetadata),
        (dict(initial_supply=-1), InvalidAmount),
        (dict(initial_supply=True), InvalidAmount),
        (dict(owner="0x1234"), InvalidAddress),
        (dict(owner=ZERO_ADDRESS), InvalidAddress),
    ],
)
def test_constructor_validation(accounts, kwargs, exc):
    params = dict(name="Base Ecosystem Token", symbol="BET", initial_supply=1, owner=accounts["owner"])
    params.update(kwargs)
    with pytest.raises(exc):
        BaseToken(params["name"], params["symbol"], params["initial_supply"], params["owner"])


def test_bad_decimals_rejected(accounts):
    with pytest.raises(InvalidMetadata):
        BaseToken("T", "T", 0, accounts["owner"], decimals=37)


def test_owner_address_is_normalized(accounts):
    tok = BaseToken("T", "T", 5, accounts["owner"].upper().replace("0X", "0x"))
    assert tok.owner() == accounts["owner"]
    assert tok.balance_of(accounts["owner"]) == 5


def test_token_address_is_deterministic(accounts):
    a = BaseToken("T", "T", 0, accounts["owner"])
    b = BaseToken("T", "T", 0, accounts["owner"])
    c = BaseToken("T", "T", 0, accounts["owner"], chain_id=1)
    assert a.address == b.address == derive_token_address(accounts["owner"], "T", "T", 1337)
    assert c.address != a.address


def test_explicit_token_address(accounts):
    pinned = "0x" + "ab" * 20
    tok = BaseToken("T", "T", 0, accounts["owner"], address=pinned.upper().replace("0X", "0x"))
    assert tok.address == pinned


def test_from_config(accounts):
    cfg = load_config(
        name="Configured",
        symbol="CFG",
        initial_supply="500e18",
        max_supply="1000e18",
        owner=accounts["alice"],
        chain_id=7,
    )
    sink = InMemoryEventSink()
    tok = BaseToken.from_config(cfg, sink=sink)
    info = tok.get_token_info()
    assert info.name == "Configured"
    assert info.total_supply == 500 * E18
    assert info.max_supply == 1000 * E18
    assert tok.owner() == accounts["alice"]
    assert tok.chain_id == 7
    assert len(sink) == 3


def test_from_config_with_event_log(tmp_path, accounts):
    path = tmp_path / "logs" / "events.jsonl"
    cfg = load_config(owner=accounts["owner"], event_log=str(path))
    tok = BaseToken.from_config(cfg)
    tok.close()
    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert '"TokensMinted"' in lines[-1]


@pytest.mark.parametrize("chain_id", [-1, 2**64, True, "1"])
def test_chain_id_must_fit_u64(accounts, chain_id):
    with pytest.raises(InvalidAmount) as ei:
        BaseToken("T", "T", 0, accounts["owner"], chain_id=chain_id)
    assert "chain_id" in str(ei.value)
