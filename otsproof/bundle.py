"""
Typed view of the key-share bundle returned by the DKG nodes.

The transport layer fetches one JSON document per node and hands the
parsed dictionaries over as ``{node_id: response}``.  Each response
looks like::

    {
      "keyshares": [
        {"key_index": 0,
         "shares": [{"node_index": 1, "element_index": 0,
                     "share_value": "0x…"}, …]}
      ],
      "keys_metadata": [
        {"key_index": 0, "merkle_root": "0x…", "merkle_proof": ["0x…"],
         "tree_index": 3, "denomination": "0.1", "batch_id": "…"}
      ]
    }

:func:`collect_key` gathers everything the builder needs for one
``key_index`` and refuses to paper over disagreements between nodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from .address import address_bytes
from .constants import ORDER
from .errors import InconsistentMetadataError, ReconstructionError
from .field import FieldElement
from .hash import to_bytes32
from .shamir import KeyShare

logger = logging.getLogger("otsproof.bundle")

Bytes32 = Annotated[bytes, BeforeValidator(to_bytes32)]


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not a share value")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip()
        return int(v, 16) if v[:2] in ("0x", "0X") else int(v, 10)
    raise ValueError(f"unsupported share value type {type(value).__name__}")


# ── wire models ─────────────────────────────────────────────────────────

class ShareEntry(BaseModel):
    """One node's share of one key element."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    node_index: int = Field(..., ge=1, description="x-coordinate of the share")
    element_index: int = Field(0, ge=0, description="WOTS chain position (0 for ECDSA)")
    share_value: int = Field(..., ge=0, description="y-coordinate of the share")

    @field_validator("share_value", mode="before")
    @classmethod
    def _share_value(cls, v: Any) -> int:
        return _parse_int(v)

    def __repr__(self) -> str:
        return (f"ShareEntry(node_index={self.node_index}, "
                f"element_index={self.element_index})")


class KeyShareEntry(BaseModel):
    """All shares one node holds for one key."""

    model_config = ConfigDict(extra="ignore")

    key_index: int = Field(..., ge=0)
    shares: List[ShareEntry] = Field(default_factory=list)


class KeyMetadata(BaseModel):
    """Tree placement and denomination of one key."""

    model_config = ConfigDict(extra="ignore")

    key_index: int = Field(..., ge=0)
    merkle_root: Bytes32
    merkle_proof: List[Bytes32] = Field(default_factory=list)
    tree_index: int = Field(..., ge=0)
    denomination: Decimal
    batch_id: Optional[str] = None
    public_key: Optional[List[Bytes32]] = Field(
        None, description="WOTS public key as published by the node",
    )
    address: Optional[str] = Field(
        None, description="ECDSA address as published by the node",
    )

    @field_validator("address")
    @classmethod
    def _address(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            address_bytes(v)
        return v


class NodeResponse(BaseModel):
    """One DKG node's answer for a withdrawal request."""

    model_config = ConfigDict(extra="ignore")

    keyshares: List[KeyShareEntry] = Field(default_factory=list)
    keys_metadata: List[KeyMetadata] = Field(default_factory=list)

    def key(self, key_index: int) -> Optional[KeyShareEntry]:
        return next((k for k in self.keyshares if k.key_index == key_index), None)

    def metadata(self, key_index: int) -> Optional[KeyMetadata]:
        return next((m for m in self.keys_metadata if m.key_index == key_index), None)


# ── collected view ──────────────────────────────────────────────────────

@dataclass
class CollectedKey:
    """Shares and agreed metadata for one key, across all nodes."""

    key_index: int
    shares_by_element: Dict[int, List[KeyShare]]
    merkle_root: bytes
    merkle_proof: List[bytes]
    tree_index: int
    denomination: Decimal
    batch_id: Optional[str] = None
    expected_public_key: Optional[List[bytes]] = None
    expected_address: Optional[bytes] = None
    nodes: List[Any] = field(default_factory=list)

    def shares_for(self, element_index: int) -> List[KeyShare]:
        return list(self.shares_by_element.get(element_index, ()))


_CHECKED_FIELDS = ("tree_index", "merkle_root", "merkle_proof")


def _check_agreement(
    per_node: Dict[Any, KeyMetadata],
) -> KeyMetadata:
    ref_node, ref = next(iter(per_node.items()))
    for node_id, meta in per_node.items():
        for name in _CHECKED_FIELDS:
            if getattr(meta, name) != getattr(ref, name):
                raise InconsistentMetadataError(
                    f"{name} mismatch: node {node_id!r} disagrees with "
                    f"node {ref_node!r}",
                    node_id=node_id,
                    field=name,
                )
        for name in ("denomination", "public_key", "address"):
            mine, theirs = getattr(meta, name), getattr(ref, name)
            if mine is not None and theirs is not None and mine != theirs:
                raise InconsistentMetadataError(
                    f"{name} mismatch: node {node_id!r} disagrees with "
                    f"node {ref_node!r}",
                    node_id=node_id,
                    field=name,
                )
    return ref


def collect_key(
    responses: Mapping[Any, Union[NodeResponse, Mapping[str, Any]]],
    key_index: int,
    prime: int = ORDER,
) -> CollectedKey:
    """
    Gather every node's shares for *key_index* and the metadata all
    contributing nodes agree on.

    Raises
    ------
    InconsistentMetadataError
        Nodes disagree on tree index, root or proof; a node reports two
        different values for the same share; or no node has metadata
        for the key.
    ReconstructionError
        A share value lies outside the field.
    """
    parsed = {
        nid: r if isinstance(r, NodeResponse) else NodeResponse.model_validate(r)
        for nid, r in responses.items()
    }

    metas: Dict[Any, KeyMetadata] = {}
    grouped: Dict[int, Dict[int, KeyShare]] = {}
    nodes: List[Any] = []
    for nid, resp in parsed.items():
        meta = resp.metadata(key_index)
        if meta is not None:
            metas[nid] = meta
        entry = resp.key(key_index)
        if entry is None:
            continue
        nodes.append(nid)
        for s in entry.shares:
            if s.share_value >= prime:
                raise ReconstructionError(
                    f"node {nid!r} share for element {s.element_index} "
                    f"is outside the field"
                )
            slot = grouped.setdefault(s.element_index, {})
            prev = slot.get(s.node_index)
            if prev is not None and prev.value.value != s.share_value:
                raise InconsistentMetadataError(
                    f"conflicting values for node_index {s.node_index}, "
                    f"element {s.element_index}",
                    node_id=nid,
                    field="share_value",
                )
            slot[s.node_index] = KeyShare(
                node_index=s.node_index,
                value=FieldElement(s.share_value, prime),
                element_index=s.element_index,
            )

    if not metas:
        raise InconsistentMetadataError(
            f"no node supplied metadata for key_index {key_index}",
            field="keys_metadata",
        )
    meta = _check_agreement(metas)

    logger.debug(
        "key %d: %d node(s), %d element(s), tree_index=%d",
        key_index, len(nodes), len(grouped), meta.tree_index,
    )
    return CollectedKey(
        key_index=key_index,
        shares_by_element={
            e: [slot[n] for n in sorted(slot)] for e, slot in sorted(grouped.items())
        },
        merkle_root=meta.merkle_root,
        merkle_proof=list(meta.merkle_proof),
        tree_index=meta.tree_index,
        denomination=meta.denomination,
        batch_id=meta.batch_id,
        expected_public_key=list(meta.public_key) if meta.public_key else None,
        expected_address=address_bytes(meta.address) if meta.address else None,
        nodes=nodes,
    )
