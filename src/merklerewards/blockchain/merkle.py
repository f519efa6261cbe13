"""
merklerewards/blockchain/merkle.py

Merkle proof verification for cumulative reward distributions.

Leaves and proofs are produced by the offline distribution job; this module
only checks membership. The encoding must stay byte-for-byte identical to
that job:

    leaf = keccak256(account[20] || beneficiary[20] || uint256(amount)[32])

Interior nodes hash the two children in sorted (bytewise) order, so proofs
carry no left/right flags.

Usage:
    from merklerewards.blockchain.merkle import hash_leaf, verify_proof

    leaf = hash_leaf(account, beneficiary, 1000)
    ok = verify_proof(proof, merkle_root, leaf)
"""

import logging
from typing import Iterable, Sequence, Union

from Crypto.Hash import keccak

from ..config import (
    ADDRESS_LENGTH,
    AMOUNT_LENGTH,
    HASH_LENGTH,
    MAX_AMOUNT,
    ZERO_ADDRESS,
)
from ..errors import InvalidAddress

logger = logging.getLogger("merklerewards.blockchain.merkle")

HexLike = Union[str, bytes, bytearray]


# ============================================================================
# CODECS
# ============================================================================

def keccak256(data: bytes) -> bytes:
    """One-shot Keccak-256 (pre-standard SHA-3); returns the raw digest."""
    h = keccak.new(digest_bits=256)
    h.update(bytes(data))
    return h.digest()


def to_hex(data: bytes) -> str:
    """Lower-case 0x-prefixed hex."""
    return "0x" + bytes(data).hex()


def _hex_to_bytes(value: str) -> bytes:
    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    return bytes.fromhex(text)


def to_bytes32(value: HexLike) -> bytes:
    """
    Convert a hash given as hex string or bytes into 32 raw bytes.

    Raises:
        ValueError: if the value is not exactly 32 bytes of hex/bytes
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        raw = _hex_to_bytes(value)
    else:
        raise ValueError(f"Expected hex string or bytes, got {type(value).__name__}")
    if len(raw) != HASH_LENGTH:
        raise ValueError(f"Expected {HASH_LENGTH} bytes, got {len(raw)}")
    return raw


def normalize_hash(value: HexLike) -> str:
    """Canonical 0x-prefixed lower-case form of a 32-byte hash."""
    return to_hex(to_bytes32(value))


def address_to_bytes(address: HexLike) -> bytes:
    """
    Decode a 20-byte address.

    Raises:
        InvalidAddress: if the address is not 20 bytes of hex/bytes
    """
    try:
        if isinstance(address, (bytes, bytearray)):
            raw = bytes(address)
        elif isinstance(address, str):
            raw = _hex_to_bytes(address)
        else:
            raise InvalidAddress(f"Unsupported address type: {type(address).__name__}")
    except ValueError:
        raise InvalidAddress(f"Malformed address: {address!r}")
    if len(raw) != ADDRESS_LENGTH:
        raise InvalidAddress(f"Address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return raw


def normalize_address(address: HexLike) -> str:
    """Canonical 0x-prefixed lower-case form of an address."""
    return to_hex(address_to_bytes(address))


def is_zero_address(address: HexLike) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


# ============================================================================
# LEAVES AND PROOFS
# ============================================================================

def encode_leaf(account: HexLike, beneficiary: HexLike, amount: int) -> bytes:
    """
    Packed leaf preimage (72 bytes).

    Raises:
        InvalidAddress: on malformed account or beneficiary
        ValueError: if amount is outside uint256
    """
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ValueError(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0 or amount > MAX_AMOUNT:
        raise ValueError(f"Amount out of uint256 range: {amount}")
    return (
        address_to_bytes(account)
        + address_to_bytes(beneficiary)
        + amount.to_bytes(AMOUNT_LENGTH, "big")
    )


def hash_leaf(account: HexLike, beneficiary: HexLike, amount: int) -> str:
    """Leaf hash for (account, beneficiary, cumulative amount) as 0x-hex."""
    return to_hex(keccak256(encode_leaf(account, beneficiary, amount)))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Commutative node hash: children are concatenated in sorted order."""
    if a <= b:
        return keccak256(a + b)
    return keccak256(b + a)


def process_proof(proof: Iterable[HexLike], leaf: HexLike) -> bytes:
    """
    Fold the proof over the leaf and return the computed root.

    Raises:
        ValueError: if the leaf or any proof element is not a 32-byte hash
    """
    computed = to_bytes32(leaf)
    for sibling in proof:
        computed = hash_pair(computed, to_bytes32(sibling))
    return computed


def verify_proof(proof: Sequence[HexLike], root: HexLike, leaf: HexLike) -> bool:
    """
    Check that `leaf` belongs to the tree committed to by `root`.

    Never raises: malformed input of any kind yields False.
    """
    try:
        return process_proof(proof, leaf) == to_bytes32(root)
    except (ValueError, TypeError) as e:
        logger.debug(f"Rejecting malformed proof input: {e}")
        return False
