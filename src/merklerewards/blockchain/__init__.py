"""
merklerewards/blockchain/

Chain-facing primitives: Merkle proof verification and the token ledger
the claim engine pays out from.
"""

from .merkle import (
    keccak256,
    hash_leaf,
    hash_pair,
    encode_leaf,
    process_proof,
    verify_proof,
    normalize_address,
    normalize_hash,
    is_zero_address,
    to_hex,
)

from .token import (
    TokenLedger,
    InMemoryToken,
)

__all__ = [
    # Merkle verification
    "keccak256",
    "hash_leaf",
    "hash_pair",
    "encode_leaf",
    "process_proof",
    "verify_proof",
    "normalize_address",
    "normalize_hash",
    "is_zero_address",
    "to_hex",
    # Token ledger
    "TokenLedger",
    "InMemoryToken",
]
