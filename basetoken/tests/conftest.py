"""
basetoken.tests.conftest
========================

Shared fixtures for the token test-suite.

- Deterministic account addresses derived from SHA3 of a tag, so failures
  print the same addresses on every run.
- A freshly deployed `BaseToken` per test (1_000_000 tokens to the owner,
  default 1_000_000_000 token cap) with a controllable clock.
- Ed25519 signers whose address is bound to their public key, for permits.

Usage:
    def test_mint(token, accounts):
        token.mint(accounts["owner"], accounts["alice"], 5)
        assert token.balance_of(accounts["alice"]) == 5
"""
from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from basetoken import logging as tlog
from basetoken.stdlib.token.permit import address_from_public_key
from basetoken.token import BaseToken

os.environ.setdefault("TZ", "UTC")

E18 = 10**18
INITIAL_SUPPLY = 1_000_000 * E18
START_TIME = 1_700_000_000

PROJECT_TEST_SEED = 1337


def _drbg(label: bytes, n: int) -> bytes:
    """SHA3 counter stream; deterministic key material for tests only."""
    out = b""
    ctr = 0
    while len(out) < n:
        m = hashlib.sha3_256()
        m.update(b"basetoken-tests-drbg-v1|")
        m.update(str(PROJECT_TEST_SEED).encode("ascii"))
        m.update(label)
        m.update(ctr.to_bytes(8, "big"))
        out += m.digest()
        ctr += 1
    return out[:n]


def det_address(tag: str) -> str:
    """Stable 0x-prefixed 20-byte address for a tag."""
    return "0x" + hashlib.sha3_256(tag.encode("utf-8")).hexdigest()[:40]


class FakeClock:
    """Callable epoch-seconds clock that only moves when told to."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@dataclass
class Signer:
    label: str
    key: Ed25519PrivateKey

    @property
    def public_key(self) -> bytes:
        return self.key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @property
    def address(self) -> str:
        return address_from_public_key(self.public_key)

    def sign_permit(
        self,
        token: BaseToken,
        spender: str,
        value: int,
        deadline: int = 0,
        nonce: Optional[int] = None,
    ) -> bytes:
        n = token.nonces(self.address) if nonce is None else nonce
        return self.key.sign(token.build_permit_digest(self.address, spender, value, n, deadline))


def make_signer(label: str) -> Signer:
    return Signer(label, Ed25519PrivateKey.from_private_bytes(_drbg(label.encode("utf-8"), 32)))


@pytest.fixture(autouse=True)
def _clean_log_context():
    tlog.clear_context()
    root = logging.getLogger()
    level = root.level
    yield
    tlog.clear_context()
    # drop handlers installed by tlog.configure(); pytest manages its own
    for h in list(root.handlers):
        if isinstance(h.formatter, (tlog.JSONFormatter, tlog.TextFormatter)):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


@pytest.fixture
def accounts() -> Dict[str, str]:
    return {tag: det_address(f"basetoken-test:{tag}") for tag in ("owner", "alice", "bob", "carol")}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token(accounts: Dict[str, str], clock: FakeClock) -> BaseToken:
    return BaseToken("Base Ecosystem Token", "BET", INITIAL_SUPPLY, accounts["owner"], clock=clock)


@pytest.fixture
def signer() -> Signer:
    return make_signer("holder")


@pytest.fixture
def funded_signer(token: BaseToken, accounts: Dict[str, str], signer: Signer) -> Signer:
    """A signer holding 1_000 tokens."""
    token.transfer(accounts["owner"], signer.address, 1_000 * E18)
    return signer
