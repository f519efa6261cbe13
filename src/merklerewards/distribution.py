"""
merklerewards/distribution.py

Reader for the distribution files produced by the offline merkle job.

File format (MerkleDist.json):
    {
        "merkleRoot": "0x...",
        "totalAmount": "123456",
        "claims": {
            "<account>": {
                "beneficiary": "0x...",
                "amount": "1000",
                "proof": ["0x...", ...]
            }
        }
    }

Amounts may be JSON numbers or decimal strings. Callers read the file and
submit the per-account tuples verbatim; the claim engine itself never
parses it.

Usage:
    dist = load_distribution("distributions/2024-01-01/MerkleDist.json")
    claim = dist.claim_for(account)
    aggregator.claim_merkle(claim.account, claim.beneficiary, claim.amount,
                            dist.merkle_root, claim.proof)
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .blockchain.merkle import hash_leaf, normalize_address, normalize_hash, verify_proof
from .errors import InvalidAddress
from .protocol.aggregator import MerkleClaim

logger = logging.getLogger("merklerewards.distribution")


@dataclass
class Distribution:
    """One distribution snapshot: root, total and per-account claims."""
    merkle_root: str
    total_amount: int
    claims: Dict[str, MerkleClaim] = field(default_factory=dict)

    @property
    def accounts(self) -> List[str]:
        return list(self.claims)

    def claim_for(self, account: str) -> Optional[MerkleClaim]:
        """Claim request for `account`, or None if it has no entry."""
        return self.claims.get(normalize_address(account))

    def batch(self, accounts: Optional[List[str]] = None) -> List[MerkleClaim]:
        """Claim requests for `accounts` (all accounts if None), in order."""
        if accounts is None:
            return list(self.claims.values())
        return [self.claims[normalize_address(a)] for a in accounts]

    def verify(self) -> List[str]:
        """
        Check every claim's proof against the root.

        Returns:
            Accounts whose proof does not verify (empty when all do)
        """
        failed = []
        for account, claim in self.claims.items():
            try:
                leaf = hash_leaf(claim.account, claim.beneficiary, claim.amount)
            except (ValueError, InvalidAddress) as e:
                logger.warning(f"Malformed claim for {account}: {e}")
                failed.append(account)
                continue
            if not verify_proof(claim.proof, self.merkle_root, leaf):
                failed.append(account)
        if failed:
            logger.warning(f"{len(failed)} of {len(self.claims)} proofs failed for {self.merkle_root}")
        return failed

    def to_dict(self) -> dict:
        return {
            "merkleRoot": self.merkle_root,
            "totalAmount": str(self.total_amount),
            "claims": {
                account: {
                    "beneficiary": claim.beneficiary,
                    "amount": str(claim.amount),
                    "proof": list(claim.proof),
                }
                for account, claim in self.claims.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Distribution":
        """
        Parse the JSON structure written by the distribution job.

        Raises:
            ValueError: if a required field is missing or malformed
        """
        try:
            root = normalize_hash(data["merkleRoot"])
            raw_claims = data.get("claims", {})
            claims: Dict[str, MerkleClaim] = {}
            for account, entry in raw_claims.items():
                key = normalize_address(account)
                claims[key] = MerkleClaim(
                    account=key,
                    beneficiary=normalize_address(entry["beneficiary"]),
                    amount=int(entry["amount"]),
                    proof=[normalize_hash(p) for p in entry.get("proof", [])],
                )
            total = int(data.get("totalAmount", sum(c.amount for c in claims.values())))
        except KeyError as e:
            raise ValueError(f"Distribution is missing field {e}")
        except InvalidAddress as e:
            raise ValueError(f"Distribution has a malformed address: {e}")
        return cls(merkle_root=root, total_amount=total, claims=claims)


def load_distribution(path: Union[str, Path]) -> Distribution:
    """Read a distribution file from disk."""
    with open(path, "r") as f:
        data = json.load(f)
    dist = Distribution.from_dict(data)
    logger.debug(f"Loaded distribution {dist.merkle_root} with {len(dist.claims)} claims from {path}")
    return dist
