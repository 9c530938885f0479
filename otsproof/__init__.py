"""
otsproof: threshold one-time-key reconstruction and withdrawal proofs.

Rebuilds a one-time signing key from a 2-of-3 DKG quorum and produces
everything a treasury contract needs to release funds:

- **Shamir / Lagrange reconstruction** over the secp256k1 scalar field,
  kept strictly apart from the DKG's *sum of public shares*
- **Winternitz one-time signatures** (w = 16, 67 Keccak-256 chains)
- **Recoverable ECDSA** personal-message signatures via libsecp256k1
- **Merkle inclusion proofs** with the contract's index-parity rule

Quick start
-----------
::

    from otsproof import (
        SignatureScheme, WithdrawalIntent, WithdrawalProofBuilder,
        collect_key,
    )

    key = collect_key(node_responses, key_index=0)
    intent = WithdrawalIntent(
        recipient="0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
        denomination="0.1",
        merkle_root=key.merkle_root,
        merkle_root_id=1,
    )

    builder = WithdrawalProofBuilder(SignatureScheme.WOTS)
    signed = builder.build_and_sign(key, intent)
    contract.withdraw(*signed.contract_args())
"""

__version__ = "0.1.0"

# ── core types ──────────────────────────────────────────────────────────
from .constants import ORDER, FIELD_PRIME, THRESHOLD, NUM_NODES, WOTS_LEN
from .field import FieldElement, Scalar, Coordinate, mod_inverse
from .curve import Point, G, scalar_multiply, is_on_curve

# ── errors ──────────────────────────────────────────────────────────────
from .errors import (
    OTSProofError,
    ReconstructionError,
    InsufficientSharesError,
    InconsistentMetadataError,
    IncompleteKeyError,
    NoInverseError,
    InvalidPointError,
    SigningError,
    ProofInvalidError,
)

# ── protocol ────────────────────────────────────────────────────────────
from .protocol import (
    BuildState,
    SignatureScheme,
    SignedWithdrawal,
    WithdrawalIntent,
    WithdrawalProofBuilder,
    build_from_bundle,
    compose_ecdsa_message,
    compose_wots_message,
    nullifier_hash,
)
from .bundle import CollectedKey, NodeResponse, collect_key

# ── reconstruction ──────────────────────────────────────────────────────
from .shamir import (
    KeyShare,
    ReconstructionMode,
    lagrange_at_zero,
    reconstruct,
    sum_of_public_shares,
)
from .polynomial import share_secret, lagrange_coefficient

# ── signatures & proofs ─────────────────────────────────────────────────
from .wots import PrivateElements, WOTSKeyPair
from .signing import ECDSASignature, sign_personal, recover_address
from .merkle import MerkleTree, leaf_hash_address, leaf_hash_wots

# ── encoding ────────────────────────────────────────────────────────────
from .address import to_address, to_checksum_address
from .hash import keccak256, encode_packed, abi_encode, to_wei

__all__ = [
    # version
    "__version__",
    # core
    "ORDER", "FIELD_PRIME", "THRESHOLD", "NUM_NODES", "WOTS_LEN",
    "FieldElement", "Scalar", "Coordinate", "mod_inverse",
    "Point", "G", "scalar_multiply", "is_on_curve",
    # errors
    "OTSProofError", "ReconstructionError", "InsufficientSharesError",
    "InconsistentMetadataError", "IncompleteKeyError", "NoInverseError",
    "InvalidPointError", "SigningError", "ProofInvalidError",
    # protocol
    "BuildState", "SignatureScheme", "SignedWithdrawal", "WithdrawalIntent",
    "WithdrawalProofBuilder", "build_from_bundle",
    "compose_ecdsa_message", "compose_wots_message", "nullifier_hash",
    "CollectedKey", "NodeResponse", "collect_key",
    # reconstruction
    "KeyShare", "ReconstructionMode", "lagrange_at_zero", "reconstruct",
    "sum_of_public_shares", "share_secret", "lagrange_coefficient",
    # signatures & proofs
    "PrivateElements", "WOTSKeyPair", "ECDSASignature", "sign_personal",
    "recover_address", "MerkleTree", "leaf_hash_address", "leaf_hash_wots",
    # encoding
    "to_address", "to_checksum_address", "keccak256", "encode_packed",
    "abi_encode", "to_wei",
]
