from __future__ import annotations

import hashlib

import pytest

from basetoken.errors import InvalidAddress, PermitExpired, PermitInvalid
from basetoken.stdlib.token import ZERO_ADDRESS
from basetoken.stdlib.token.permit import (DOMAIN_TAG, address_from_public_key,
                                           domain_separator_for)
from basetoken.token import BaseToken

from .conftest import E18, START_TIME, make_signer


def test_domain_separator(token):
    ds = token.DOMAIN_SEPARATOR
    assert len(ds) == 32
    assert ds != b"\x00" * 32
    assert ds == token.domain_separator()
    assert ds == domain_separator_for(token.chain_id, token.address, token.name())


def test_domain_separator_depends_on_chain_and_address(accounts):
    a = BaseToken("T", "T", 0, accounts["owner"], chain_id=1)
    b = BaseToken("T", "T", 0, accounts["owner"], chain_id=2)
    c = BaseToken("T", "T", 0, accounts["owner"], chain_id=1, address="0x" + "11" * 20)
    assert len({a.DOMAIN_SEPARATOR, b.DOMAIN_SEPARATOR, c.DOMAIN_SEPARATOR}) == 3


def test_domain_tag_is_versioned():
    assert DOMAIN_TAG == b"basetoken.permit/v1"


def test_address_from_public_key(signer):
    expected = "0x" + hashlib.sha3_256(signer.public_key).hexdigest()[:40]
    assert signer.address == expected
    assert address_from_public_key(signer.public_key.hex()) == expected
    assert address_from_public_key("0x" + signer.public_key.hex()) == expected


def test_permit_sets_allowance_and_bumps_nonce(token, accounts, funded_signer):
    bob = accounts["bob"]
    sig = funded_signer.sign_permit(token, bob, 25 * E18, deadline=START_TIME + 60)
    receipt = token.permit(
        funded_signer.address, bob, 25 * E18, START_TIME + 60, funded_signer.public_key, sig,
        caller=accounts["carol"],
    )
    assert token.allowance(funded_signer.address, bob) == 25 * E18
    assert token.nonces(funded_signer.address) == 1
    assert receipt.caller == accounts["carol"]
    assert receipt.events[0].name == "Approval"
    assert receipt.events[0].args == {"owner": funded_signer.address, "spender": bob, "value": 25 * E18}

    # the allowance is a normal allowance
    token.transfer_from(bob, funded_signer.address, bob, 5 * E18)
    assert token.balance_of(bob) == 5 * E18


def test_permit_accepts_hex_inputs(token, accounts, signer):
    bob = accounts["bob"]
    sig = signer.sign_permit(token, bob, 1)
    token.permit(signer.address, bob, 1, 0, "0x" + signer.public_key.hex(), sig.hex())
    assert token.allowance(signer.address, bob) == 1


def test_permit_replay_fails(token, accounts, signer):
    bob = accounts["bob"]
    sig = signer.sign_permit(token, bob, 7)
    token.permit(signer.address, bob, 7, 0, signer.public_key, sig)
    token.approve(signer.address, bob, 0)
    with pytest.raises(PermitInvalid) as ei:
        token.permit(signer.address, bob, 7, 0, signer.public_key, sig)
    assert ei.value.data == {"reason": "bad_signature"}
    assert token.allowance(signer.address, bob) == 0
    assert token.nonces(signer.address) == 1


def test_permit_expired(token, accounts, signer, clock):
    bob = accounts["bob"]
    deadline = START_TIME + 10
    sig = signer.sign_permit(token, bob, 7, deadline=deadline)
    clock.advance(11)
    with pytest.raises(PermitExpired) as ei:
        token.permit(signer.address, bob, 7, deadline, signer.public_key, sig)
    assert ei.value.data == {"deadline": str(deadline), "now": str(START_TIME + 11)}
    assert token.nonces(signer.address) == 0


def test_permit_at_deadline_is_valid(token, accounts, signer, clock):
    bob = accounts["bob"]
    deadline = START_TIME + 10
    sig = signer.sign_permit(token, bob, 7, deadline=deadline)
    clock.advance(10)
    token.permit(signer.address, bob, 7, deadline, signer.public_key, sig)
    assert token.allowance(signer.address, bob) == 7


def test_permit_zero_deadline_never_expires(token, accounts, signer, clock):
    sig = signer.sign_permit(token, accounts["bob"], 3)
    clock.advance(10**9)
    token.permit(signer.address, accounts["bob"], 3, 0, signer.public_key, sig)


def test_permit_owner_mismatch(token, accounts, signer):
    other = make_signer("someone-else")
    bob = accounts["bob"]
    sig = signer.sign_permit(token, bob, 1)
    with pytest.raises(PermitInvalid) as ei:
        token.permit(signer.address, bob, 1, 0, other.public_key, sig)
    assert ei.value.data == {"reason": "owner_mismatch"}


def test_permit_wrong_signer(token, accounts, signer):
    other = make_signer("someone-else")
    bob = accounts["bob"]
    # signed by another key over the right digest
    digest = token.build_permit_digest(signer.address, bob, 1, 0, 0)
    sig = other.key.sign(digest)
    with pytest.raises(PermitInvalid):
        token.permit(signer.address, bob, 1, 0, signer.public_key, sig)
    assert token.allowance(signer.address, bob) == 0


def test_permit_tampered_value(token, accounts, signer):
    bob = accounts["bob"]
    sig = signer.sign_permit(token, bob, 1)
    with pytest.raises(PermitInvalid):
        token.permit(signer.address, bob, 1_000, 0, signer.public_key, sig)


def test_permit_bad_public_key(token, accounts, signer):
    with pytest.raises(PermitInvalid) as ei:
        token.permit(signer.address, accounts["bob"], 1, 0, b"\x01" * 5, b"\x00" * 64)
    assert ei.value.data == {"reason": "bad_public_key"}
    with pytest.raises(PermitInvalid):
        token.permit(signer.address, accounts["bob"], 1, 0, "zz", b"\x00" * 64)


def test_permit_zero_spender(token, signer):
    with pytest.raises(InvalidAddress):
        token.permit(signer.address, ZERO_ADDRESS, 1, 0, signer.public_key, b"\x00" * 64)


def test_permit_signed_for_other_token_fails(token, accounts, signer):
    other = BaseToken("Other", "OTH", 0, accounts["owner"])
    bob = accounts["bob"]
    sig = signer.sign_permit(other, bob, 1)
    with pytest.raises(PermitInvalid):
        token.permit(signer.address, bob, 1, 0, signer.public_key, sig)


def test_cancel_next_permit(token, accounts, signer):
    bob = accounts["bob"]
    sig = signer.sign_permit(token, bob, 9)
    token.cancel_next_permit(signer.address)
    assert token.nonces(signer.address) == 1
    with pytest.raises(PermitInvalid):
        token.permit(signer.address, bob, 9, 0, signer.public_key, sig)
    # a fresh signature over the new nonce works
    token.permit(signer.address, bob, 9, 0, signer.public_key, signer.sign_permit(token, bob, 9))
    assert token.nonces(signer.address) == 2
