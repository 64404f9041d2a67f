"""
Permit-style off-chain approvals
================================

A meta-approval flow in the spirit of EIP-2612. Holders sign a structured
"permit" message off-chain; *anyone* can then submit it to set an allowance
without the holder sending a separate `approve` call.

Design goals
------------
- **Ed25519 signatures** verified with the `cryptography` package.
- **Typed domain**: deterministic SignBytes with an explicit domain tag,
  chain id, token address and token name.
- **Replays prevented**: a per-owner, monotonically increasing nonce is
  consumed on success.
- **Deadline**: optional epoch-seconds deadline checked against an
  injectable clock; 0 disables the check.
- **Owner binding**: the owner address is derived from the public key as
  `"0x" + sha3_256(pubkey).hex()[:40]` and must equal `owner`.

SignBytes layout
----------------
    domain_separator (32)
    || owner   (20)
    || spender (20)
    || value   (u256, 32)
    || nonce   (u256, 32)
    || deadline(u64, 8)

The signer signs `sha3_256(SignBytes)`.

Public API
----------
- nonces(owner)                                          -> int
- domain_separator()                                     -> bytes32
- build_sign_bytes(owner, spender, value, nonce, deadline) -> bytes
- permit_digest(owner, spender, value, nonce, deadline)    -> bytes32
- permit(owner, spender, value, deadline, public_key, signature) -> bool
- cancel_next_permit(caller)                             -> int

Utilities
---------
- address_from_public_key(pubkey) -> str
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Callable, Final, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from ...errors import PermitExpired, PermitInvalid
from ...state.journal import Journal
from ...state.token_state import NONCES, TokenMetadata
from ..math import require_u64, u64_bytes, u256_add, u256_bytes
from . import address_bytes, normalize_address, require_address, require_amount
from .fungible import FungibleLedger

log = logging.getLogger(__name__)

DOMAIN_TAG: Final[bytes] = b"basetoken.permit/v1"

Clock = Callable[[], int]
BytesLike = Union[bytes, bytearray, str]


def _sha3(data: bytes) -> bytes:
    return hashlib.sha3_256(data).digest()


def _as_bytes(v: BytesLike, *, what: str) -> bytes:
    """Accept raw bytes or a hex string (with or without 0x)."""
    if isinstance(v, (bytes, bytearray)):
        return bytes(v)
    if isinstance(v, str):
        s = v[2:] if v[:2] in ("0x", "0X") else v
        try:
            return bytes.fromhex(s)
        except ValueError:
            raise PermitInvalid(f"{what} is not valid hex", reason=f"bad_{what}") from None
    raise PermitInvalid(f"{what} must be bytes or hex", reason=f"bad_{what}")


def system_clock() -> int:
    return int(time.time())


# ------------------------------------------------------------------------------
# Address derivation
# ------------------------------------------------------------------------------


def address_from_public_key(public_key: BytesLike) -> str:
    """Account address bound to an Ed25519 public key."""
    pub = _as_bytes(public_key, what="public_key")
    return "0x" + hashlib.sha3_256(pub).hexdigest()[:40]


def domain_separator_for(chain_id: int, token_address: str, name: str) -> bytes:
    """32-byte domain separator bound to (tag, chain_id, token address, name)."""
    preimage = (
        DOMAIN_TAG
        + u64_bytes(chain_id)
        + address_bytes(token_address)
        + _sha3(name.encode("ascii"))
    )
    return _sha3(preimage)


class Permit:
    """
    Nonces, domain and signed-approval execution for one token.

    Allowance writes go through the `FungibleLedger` so permits land in the
    same table and emit the same "Approval" event as `approve`.
    """

    def __init__(
        self,
        journal: Journal,
        ledger: FungibleLedger,
        meta: TokenMetadata,
        clock: Optional[Clock] = None,
    ) -> None:
        self._j = journal
        self._ledger = ledger
        self._meta = meta
        self._clock: Clock = clock or system_clock
        self._domain = domain_separator_for(meta.chain_id, meta.address, meta.name)

    # --------------------------------------------------------------------------
    # Nonces
    # --------------------------------------------------------------------------

    def nonces(self, owner: str) -> int:
        """Current (unused) nonce for `owner`."""
        return int(self._j.get(NONCES, normalize_address(owner), 0))

    def _consume_nonce(self, owner: str) -> int:
        n = self.nonces(owner)
        self._j.set(NONCES, owner, u256_add(n, 1))
        return n

    # --------------------------------------------------------------------------
    # Domain & SignBytes
    # --------------------------------------------------------------------------

    def domain_separator(self) -> bytes:
        return self._domain

    def build_sign_bytes(self, owner: str, spender: str, value: int, nonce: int, deadline: int) -> bytes:
        """
        Canonical SignBytes for a permit authorization. Tooling signs the
        `sha3_256` of these bytes; see `permit_digest`.
        """
        return (
            self._domain
            + address_bytes(require_address(owner, what="owner"))
            + address_bytes(require_address(spender, what="spender"))
            + u256_bytes(value)
            + u256_bytes(nonce)
            + u64_bytes(deadline)
        )

    def permit_digest(self, owner: str, spender: str, value: int, nonce: int, deadline: int) -> bytes:
        return _sha3(self.build_sign_bytes(owner, spender, value, nonce, deadline))

    # --------------------------------------------------------------------------
    # Execution
    # --------------------------------------------------------------------------

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        public_key: BytesLike,
        signature: BytesLike,
    ) -> bool:
        """
        Apply a signed permit:

        - Enforces the deadline unless it is 0.
        - Checks `owner == address_from_public_key(public_key)`.
        - Verifies the signature over the digest built with the current nonce.
        - Consumes the nonce, sets the allowance and emits Approval.
        """
        o = require_address(owner, what="owner")
        sp = require_address(spender, what="spender")
        require_amount(value)
        require_u64(deadline, what="deadline")

        if deadline != 0:
            now = int(self._clock())
            if now > deadline:
                raise PermitExpired(deadline=deadline, now=now)

        pub = _as_bytes(public_key, what="public_key")
        sig = _as_bytes(signature, what="signature")
        try:
            vk = Ed25519PublicKey.from_public_bytes(pub)
        except ValueError:
            raise PermitInvalid("public key is not a valid Ed25519 key", reason="bad_public_key") from None

        if address_from_public_key(pub) != o:
            raise PermitInvalid("public key does not match owner", reason="owner_mismatch")

        nonce = self.nonces(o)
        digest = self.permit_digest(o, sp, value, nonce, deadline)
        try:
            vk.verify(sig, digest)
        except InvalidSignature:
            log.debug("permit signature rejected owner=%s nonce=%d", o, nonce)
            raise PermitInvalid("signature verification failed", reason="bad_signature") from None

        self._consume_nonce(o)
        self._ledger.set_allowance(o, sp, value)
        return True

    def cancel_next_permit(self, caller: str) -> int:
        """
        Bump the caller's own nonce, invalidating any signed but unsubmitted
        permit. Returns the new nonce.
        """
        o = require_address(caller, what="owner")
        return self._consume_nonce(o) + 1


__all__ = [
    "DOMAIN_TAG",
    "Permit",
    "address_from_public_key",
    "domain_separator_for",
    "system_clock",
]
