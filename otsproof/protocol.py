"""
Withdrawal-proof orchestration.

Provides :class:`WithdrawalProofBuilder`, which turns one key's DKG
shares plus a :class:`WithdrawalIntent` into a :class:`SignedWithdrawal`
ready to be passed to the treasury contract's ``withdraw(...)``.

Usage
-----
::

    from otsproof import (
        SignatureScheme, WithdrawalIntent, build_from_bundle,
    )

    intent = WithdrawalIntent(
        recipient="0x…", denomination="0.1",
        merkle_root=root, chain_id=31337, merkle_root_id=7,
    )
    signed = build_from_bundle(responses, key_index=0, intent=intent,
                               scheme=SignatureScheme.WOTS)
    contract.withdraw(*signed.contract_args())

Lifecycle (one builder per withdrawal, never reused)::

    START → SHARES_COLLECTED → KEY_RECONSTRUCTED → MESSAGE_COMPOSED
          → SIGNED → PROOF_VERIFIED_LOCALLY → READY

Any failure moves to FAILED and re-raises.  There is no internal retry:
retrying with the same shares cannot change the result, and fetching a
different quorum is the caller's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from .address import address_bytes, to_address, to_checksum_address
from .bundle import CollectedKey, collect_key
from .constants import DEFAULT_CHAIN_ID, ORDER, SCALAR_BYTES, THRESHOLD, WOTS_LEN
from .curve import Point, scalar_multiply
from .errors import (
    IncompleteKeyError,
    InconsistentMetadataError,
    InsufficientSharesError,
    InvalidPointError,
    NoInverseError,
    ProofInvalidError,
    ReconstructionError,
    SigningError,
)
from .field import FieldElement
from .hash import abi_encode, encode_packed, keccak256, to_bytes32, to_wei
from . import merkle, signing, wots
from .shamir import lagrange_at_zero, sum_of_public_shares

logger = logging.getLogger("otsproof.protocol")


class SignatureScheme(Enum):
    WOTS = "wots"
    ECDSA = "ecdsa"


class BuildState(Enum):
    START = "start"
    SHARES_COLLECTED = "shares_collected"
    KEY_RECONSTRUCTED = "key_reconstructed"
    MESSAGE_COMPOSED = "message_composed"
    SIGNED = "signed"
    PROOF_VERIFIED_LOCALLY = "proof_verified_locally"
    READY = "ready"
    FAILED = "failed"


# ── value objects ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class WithdrawalIntent:
    """
    What the user wants withdrawn, and where.

    ``merkle_root_id`` is the contract's registry id for ``merkle_root``;
    it is resolved on-chain by the caller and is required for the ECDSA
    message and for the contract call.
    """

    recipient: Union[str, bytes]
    denomination: Union[Decimal, str, int]
    merkle_root: Union[bytes, str]
    chain_id: int = DEFAULT_CHAIN_ID
    nonce: int = 0
    timestamp: int = 0
    merkle_root_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "recipient", address_bytes(self.recipient))
        to_wei(self.denomination)
        object.__setattr__(self, "denomination", Decimal(self.denomination))
        object.__setattr__(self, "merkle_root", to_bytes32(self.merkle_root))
        if self.chain_id < 0 or self.nonce < 0 or self.timestamp < 0:
            raise ValueError("chain_id, nonce and timestamp must be ≥ 0")
        if self.merkle_root_id is not None and self.merkle_root_id < 0:
            raise ValueError("merkle_root_id must be ≥ 0")

    @property
    def denomination_wei(self) -> int:
        return to_wei(self.denomination)

    @property
    def recipient_checksum(self) -> str:
        return to_checksum_address(self.recipient)


@dataclass
class ReconstructedKeyMaterial:
    """
    Key material alive only for the duration of one build.

    ``public_point`` is  d · G  for the Lagrange-reconstructed scalar
    (the key that signs).  ``published_point`` is the DKG nodes' sum of
    public shares, used only to check an address the nodes published.
    """

    private_scalar: Optional[FieldElement] = None
    public_point: Optional[Point] = None
    published_point: Optional[Point] = None
    address: Optional[bytes] = None
    wots_private: Optional[wots.PrivateElements] = None
    wots_public: Optional[List[bytes]] = None

    def wipe(self) -> None:
        if self.wots_private is not None:
            self.wots_private.wipe()
        self.private_scalar = None

    def __repr__(self) -> str:
        kind = "wots" if self.wots_public is not None else "ecdsa"
        addr = f", address=0x{self.address.hex()}" if self.address else ""
        return f"ReconstructedKeyMaterial({kind}{addr})"


@dataclass(frozen=True)
class SignedWithdrawal:
    """Everything the contract call needs, plus the hashes it commits to."""

    scheme: SignatureScheme
    recipient: str
    denomination_wei: int
    merkle_root: bytes
    merkle_root_id: Optional[int]
    message_hash: bytes
    signature: Union[List[bytes], bytes]
    merkle_proof: List[bytes]
    tree_index: int
    public_key: Optional[List[bytes]] = None
    address: Optional[bytes] = None
    nullifier: Optional[bytes] = None

    @property
    def public_key_or_address(self) -> Union[List[bytes], bytes]:
        return self.public_key if self.scheme is SignatureScheme.WOTS else self.address

    def contract_args(self) -> tuple:
        """
        Positional arguments for ``withdraw``.

        WOTS:  (recipient, denomination, merkleRootId, bytes32[67] signature,
                bytes32[67] publicKey, bytes32[] proof, treeIndex)
        ECDSA: (recipient, denomination, merkleRootId, bytes signature,
                bytes32[] proof, treeIndex)
        """
        if self.merkle_root_id is None:
            raise ValueError("merkle_root_id is required for the contract call")
        head = (self.recipient, self.denomination_wei, self.merkle_root_id)
        proof = list(self.merkle_proof)
        if self.scheme is SignatureScheme.WOTS:
            return head + (list(self.signature), list(self.public_key), proof,
                           self.tree_index)
        return head + (bytes(self.signature), proof, self.tree_index)


# ── message composition ─────────────────────────────────────────────────

def compose_wots_message(intent: WithdrawalIntent) -> bytes:
    """keccak256(recipient (20) ‖ denominationWei (32) ‖ merkleRoot (32) ‖ chainId (32))."""
    return keccak256(encode_packed(
        ["address", "uint256", "bytes32", "uint256"],
        [intent.recipient, intent.denomination_wei, intent.merkle_root,
         intent.chain_id],
    ))


def compose_ecdsa_message(intent: WithdrawalIntent) -> bytes:
    """keccak256(abi.encode(address recipient, uint256 wei, uint256 merkleRootId))."""
    if intent.merkle_root_id is None:
        raise ValueError("ECDSA withdrawal message requires merkle_root_id")
    return keccak256(abi_encode(
        ["address", "uint256", "uint256"],
        [intent.recipient, intent.denomination_wei, intent.merkle_root_id],
    ))


def compose_message(intent: WithdrawalIntent, scheme: SignatureScheme) -> bytes:
    if scheme is SignatureScheme.WOTS:
        return compose_wots_message(intent)
    return compose_ecdsa_message(intent)


def nullifier_hash(merkle_root_id: int, tree_index: int) -> bytes:
    """keccak256(abi.encodePacked(uint256 merkleRootId, uint256 treeIndex))."""
    return keccak256(encode_packed(["uint256", "uint256"],
                                   [merkle_root_id, tree_index]))


# ── builder ─────────────────────────────────────────────────────────────

class WithdrawalProofBuilder:
    """
    Single-use driver for one withdrawal.

    Parameters
    ----------
    scheme : SignatureScheme
        WOTS (67-element keys) or ECDSA (one scalar per key).
    threshold : int
        Shares required per secret; defaults to the 2-of-3 quorum.
    share_prime : int
        Field the shares live in; defaults to the secp256k1 order.
    """

    def __init__(
        self,
        scheme: SignatureScheme,
        *,
        threshold: int = THRESHOLD,
        share_prime: int = ORDER,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be ≥ 1")
        if share_prime < 2 or share_prime.bit_length() > 8 * SCALAR_BYTES:
            raise ValueError("share_prime must fit the 32-byte element encoding")
        if scheme is SignatureScheme.ECDSA and share_prime != ORDER:
            raise ValueError("ECDSA shares must live in the secp256k1 scalar field")
        self.scheme = scheme
        self.threshold = threshold
        self.share_prime = share_prime
        self._state = BuildState.START
        self._history: List[BuildState] = [BuildState.START]
        self._failure: Optional[str] = None
        self._used = False

    # ── state ──────────────────────────────────────────────────────────

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def failure_reason(self) -> Optional[str]:
        return self._failure

    @property
    def history(self) -> List[BuildState]:
        return list(self._history)

    def _advance(self, state: BuildState) -> None:
        logger.debug("%s: %s → %s", self.scheme.value, self._state.name, state.name)
        self._state = state
        self._history.append(state)

    def _fail(self, exc: BaseException) -> None:
        self._failure = f"{type(exc).__name__}: {exc}"
        logger.warning("%s withdrawal failed in %s: %s",
                       self.scheme.value, self._state.name, self._failure)
        self._state = BuildState.FAILED
        self._history.append(BuildState.FAILED)

    # ── main entry ─────────────────────────────────────────────────────

    def build_and_sign(
        self,
        key: CollectedKey,
        intent: WithdrawalIntent,
    ) -> SignedWithdrawal:
        """
        Reconstruct, sign and pre-flight check one withdrawal.

        Raises
        ------
        ReconstructionError
            Missing, insufficient or inconsistent shares/metadata, or a
            reconstructed key that does not match what the nodes published.
        SigningError
            Signature could not be produced or failed self-verification.
        ProofInvalidError
            The key's leaf does not fold up to the Merkle root.
        """
        if self._used:
            raise RuntimeError("WithdrawalProofBuilder is single-use")
        self._used = True

        material: Optional[ReconstructedKeyMaterial] = None
        try:
            self._check_metadata(key, intent)
            self._check_shares(key)
            self._advance(BuildState.SHARES_COLLECTED)

            material = self._reconstruct(key)
            self._advance(BuildState.KEY_RECONSTRUCTED)

            message = self._compose(intent)
            self._advance(BuildState.MESSAGE_COMPOSED)

            signature = self._sign(material, message)
            self._advance(BuildState.SIGNED)

            self._verify_inclusion(material, key)
            self._advance(BuildState.PROOF_VERIFIED_LOCALLY)

            result = SignedWithdrawal(
                scheme=self.scheme,
                recipient=intent.recipient_checksum,
                denomination_wei=intent.denomination_wei,
                merkle_root=key.merkle_root,
                merkle_root_id=intent.merkle_root_id,
                message_hash=message,
                signature=signature,
                merkle_proof=list(key.merkle_proof),
                tree_index=key.tree_index,
                public_key=(list(material.wots_public)
                            if self.scheme is SignatureScheme.WOTS else None),
                address=material.address,
                nullifier=(nullifier_hash(intent.merkle_root_id, key.tree_index)
                           if intent.merkle_root_id is not None else None),
            )
            self._advance(BuildState.READY)
        except Exception as e:
            self._fail(e)
            raise
        finally:
            if material is not None:
                material.wipe()

        logger.info("%s withdrawal ready: key %d, tree_index %d, recipient %s",
                    self.scheme.value, key.key_index, key.tree_index,
                    result.recipient)
        return result

    # ── steps ──────────────────────────────────────────────────────────

    def _check_metadata(self, key: CollectedKey, intent: WithdrawalIntent) -> None:
        if key.merkle_root != intent.merkle_root:
            raise InconsistentMetadataError(
                "withdrawal merkle_root does not match the key's metadata",
                field="merkle_root",
            )
        if to_wei(key.denomination) != intent.denomination_wei:
            raise InconsistentMetadataError(
                f"withdrawal denomination {intent.denomination} does not "
                f"match the key's {key.denomination}",
                field="denomination",
            )
        if self.scheme is SignatureScheme.ECDSA and intent.merkle_root_id is None:
            raise InconsistentMetadataError(
                "ECDSA withdrawals need the on-chain merkle_root_id",
                field="merkle_root_id",
            )

    def _check_shares(self, key: CollectedKey) -> None:
        expected = WOTS_LEN if self.scheme is SignatureScheme.WOTS else 1
        extra = sorted(e for e in key.shares_by_element if e >= expected)
        if extra:
            raise ReconstructionError(
                f"unexpected element indices for {self.scheme.value}: {extra[:8]}"
            )
        if self.scheme is SignatureScheme.ECDSA:
            have = len({s.node_index for s in key.shares_for(0)})
            if have < self.threshold:
                raise InsufficientSharesError(have, self.threshold, 0)
            return
        missing = [
            e for e in range(WOTS_LEN)
            if len({s.node_index for s in key.shares_for(e)}) < self.threshold
        ]
        if len(missing) == WOTS_LEN:
            have = max((len(v) for v in key.shares_by_element.values()), default=0)
            raise InsufficientSharesError(have, self.threshold)
        if missing:
            raise IncompleteKeyError(missing, WOTS_LEN)

    def _reconstruct(self, key: CollectedKey) -> ReconstructedKeyMaterial:
        material = ReconstructedKeyMaterial()
        try:
            if self.scheme is SignatureScheme.WOTS:
                elements = [
                    lagrange_at_zero(key.shares_for(e), self.share_prime,
                                     self.threshold).to_bytes()
                    for e in range(WOTS_LEN)
                ]
                material.wots_private = wots.PrivateElements(elements)
                del elements
                material.wots_public = wots.derive_public_key(material.wots_private)
                if (key.expected_public_key is not None
                        and list(key.expected_public_key) != material.wots_public):
                    raise ReconstructionError(
                        "reconstructed WOTS public key differs from the "
                        "published one"
                    )
                return material

            shares = key.shares_for(0)
            d = lagrange_at_zero(shares, ORDER, self.threshold)
            if d.is_zero():
                raise ReconstructionError("reconstructed private key is zero")
            material.private_scalar = d
            material.public_point = scalar_multiply(d.value)
            material.address = to_address(material.public_point)
            material.published_point = sum_of_public_shares(shares, self.threshold)
            if key.expected_address is not None:
                published = to_address(material.published_point)
                if published != key.expected_address:
                    raise ReconstructionError(
                        "sum of public shares does not match the published "
                        "address"
                    )
            return material
        except (NoInverseError, InvalidPointError) as e:
            material.wipe()
            raise ReconstructionError(f"malformed share set: {e}") from e
        except ReconstructionError:
            material.wipe()
            raise

    def _compose(self, intent: WithdrawalIntent) -> bytes:
        return compose_message(intent, self.scheme)

    def _sign(
        self,
        material: ReconstructedKeyMaterial,
        message: bytes,
    ) -> Union[List[bytes], bytes]:
        try:
            if self.scheme is SignatureScheme.WOTS:
                sig = wots.sign(material.wots_private, message)
                if not wots.verify(message, sig, material.wots_public):
                    raise SigningError("WOTS signature failed self-verification")
                return sig

            sig = signing.sign_personal(material.private_scalar, message)
            if signing.recover_address(sig, message) != material.address:
                raise SigningError("ECDSA signature recovers to a different address")
            return sig.to_bytes()
        except SigningError:
            raise
        except (ValueError, RuntimeError, ArithmeticError) as e:
            raise SigningError(f"{type(e).__name__}: {e}") from e

    def _verify_inclusion(
        self,
        material: ReconstructedKeyMaterial,
        key: CollectedKey,
    ) -> None:
        if self.scheme is SignatureScheme.WOTS:
            leaf = merkle.leaf_hash_wots(material.wots_public)
        else:
            leaf = merkle.leaf_hash_address(material.address)
        if not merkle.verify(leaf, key.merkle_proof, key.merkle_root, key.tree_index):
            raise ProofInvalidError(
                f"leaf at tree_index {key.tree_index} does not reach root "
                f"0x{key.merkle_root.hex()}"
            )


def build_from_bundle(
    responses: Mapping[Any, Any],
    key_index: int,
    intent: WithdrawalIntent,
    scheme: SignatureScheme,
    *,
    threshold: int = THRESHOLD,
    share_prime: int = ORDER,
) -> SignedWithdrawal:
    """Collect *key_index* from per-node responses and build its withdrawal."""
    key = collect_key(responses, key_index, share_prime)
    builder = WithdrawalProofBuilder(scheme, threshold=threshold,
                                     share_prime=share_prime)
    return builder.build_and_sign(key, intent)
