"""
Shared fixtures: synthetic DKG node responses for WOTS and ECDSA keys.

Shares are dealt with :func:`otsproof.polynomial.share_secret` so every
fixture has a known secret to compare the reconstruction against.
"""

import secrets

import pytest

from otsproof.address import to_address
from otsproof.constants import ORDER, WOTS_LEN
from otsproof.curve import scalar_multiply
from otsproof.field import FieldElement, Scalar
from otsproof.merkle import MerkleTree, leaf_hash_address, leaf_hash_wots
from otsproof.polynomial import share_secret
from otsproof import wots

RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
NODES = (1, 2, 3)


def _metadata(key_index, tree, tree_index, denomination, **extra):
    meta = {
        "key_index": key_index,
        "merkle_root": "0x" + tree.root.hex(),
        "merkle_proof": ["0x" + p.hex() for p in tree.proof(tree_index)],
        "tree_index": tree_index,
        "denomination": denomination,
        "batch_id": "batch-1",
    }
    meta.update(extra)
    return meta


def make_wots_responses(
    elements,
    *,
    key_index=0,
    tree_index=0,
    tree_size=2,
    denomination="0.1",
    nodes=NODES,
):
    """
    Deal each private element 2-of-3 and place the key's leaf at
    *tree_index* of a tree padded with random leaves.

    Returns ``(responses, tree, public_key)``.
    """
    public_key = wots.derive_public_key(elements)
    leaves = [secrets.token_bytes(32) for _ in range(tree_size)]
    leaves[tree_index] = leaf_hash_wots(public_key)
    tree = MerkleTree(leaves)

    per_node = {n: [] for n in nodes}
    for e, element in enumerate(elements):
        secret = FieldElement.from_bytes(element, ORDER)
        for node, y in share_secret(secret, 2, list(nodes)):
            per_node[node].append(
                {"node_index": node, "element_index": e, "share_value": hex(y.value)}
            )

    responses = {
        f"node-{n}": {
            "keyshares": [{"key_index": key_index, "shares": per_node[n]}],
            "keys_metadata": [_metadata(key_index, tree, tree_index, denomination)],
        }
        for n in nodes
    }
    return responses, tree, public_key


def make_ecdsa_responses(
    secret,
    *,
    key_index=0,
    tree_index=1,
    tree_size=4,
    denomination="1",
):
    """
    Deal *secret* 2-of-3 and commit the address of  secret · G.

    Returns ``(responses, tree, address)``.
    """
    address = to_address(scalar_multiply(secret.value))
    leaves = [secrets.token_bytes(32) for _ in range(tree_size)]
    leaves[tree_index] = leaf_hash_address(address)
    tree = MerkleTree(leaves)

    shares = share_secret(secret, 2, list(NODES))
    responses = {
        f"node-{n}": {
            "keyshares": [{
                "key_index": key_index,
                "shares": [{"node_index": n, "element_index": 0,
                            "share_value": str(y.value)}],
            }],
            "keys_metadata": [_metadata(key_index, tree, tree_index, denomination)],
        }
        for n, y in shares
    }
    return responses, tree, address


@pytest.fixture
def wots_elements():
    return [secrets.token_bytes(32) for _ in range(WOTS_LEN)]


@pytest.fixture
def wots_bundle(wots_elements):
    responses, tree, public_key = make_wots_responses(wots_elements)
    return wots_elements, responses, tree, public_key


@pytest.fixture
def ecdsa_secret():
    return Scalar(0xAC0974BEC39A17E36BA4A6B4D238FF944BACB478CBED5EFCAE784D7BF4F2FF80)


@pytest.fixture
def ecdsa_bundle(ecdsa_secret):
    responses, tree, address = make_ecdsa_responses(ecdsa_secret)
    return responses, tree, address
