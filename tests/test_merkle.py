"""
Unit tests for otsproof.merkle: the index-parity combination rule,
round trips across tree sizes and the single-leaf special case.
"""

import secrets

import pytest

from otsproof.constants import WOTS_LEN
from otsproof.hash import keccak256
from otsproof.merkle import (
    MerkleTree,
    compute_root,
    hash_pair,
    leaf_hash_address,
    leaf_hash_wots,
    verify,
)


def _leaves(n):
    return [keccak256(i.to_bytes(4, "big")) for i in range(n)]


class TestLeaves:
    def test_wots_leaf_is_packed_hash(self):
        pk = [secrets.token_bytes(32) for _ in range(WOTS_LEN)]
        assert leaf_hash_wots(pk) == keccak256(b"".join(pk))

    def test_wots_leaf_requires_67_elements(self):
        with pytest.raises(ValueError):
            leaf_hash_wots([b"\x00" * 32] * 66)

    def test_address_leaf(self):
        addr = bytes(range(20))
        assert leaf_hash_address(addr) == keccak256(addr)
        assert leaf_hash_address("0x" + addr.hex()) == keccak256(addr)


class TestParityRule:
    def test_even_index_is_left(self):
        leaf, sib = b"\x01" * 32, b"\x02" * 32
        assert compute_root(leaf, [sib], 0) == keccak256(leaf + sib)

    def test_odd_index_is_right(self):
        leaf, sib = b"\x01" * 32, b"\x02" * 32
        assert compute_root(leaf, [sib], 1) == keccak256(sib + leaf)

    def test_index_shifts_each_level(self):
        """Index 2 = binary 10: left at level 0, right at level 1."""
        leaf, s0, s1 = b"\x01" * 32, b"\x02" * 32, b"\x03" * 32
        expected = hash_pair(s1, hash_pair(leaf, s0))
        assert compute_root(leaf, [s0, s1], 2) == expected

    def test_negative_index(self):
        with pytest.raises(ValueError):
            compute_root(b"\x00" * 32, [], -1)

    def test_hex_inputs(self):
        leaf, sib = b"\x01" * 32, b"\x02" * 32
        assert compute_root("0x" + leaf.hex(), ["0x" + sib.hex()], 0) == hash_pair(leaf, sib)


class TestRoundTrip:
    @pytest.mark.parametrize("n", [1, 2, 4, 8])
    def test_every_leaf_verifies(self, n):
        leaves = _leaves(n)
        tree = MerkleTree(leaves)
        for i, leaf in enumerate(leaves):
            assert verify(leaf, tree.proof(i), tree.root, i)

    @pytest.mark.parametrize("n", [2, 4, 8])
    def test_corrupted_proof_element(self, n):
        leaves = _leaves(n)
        tree = MerkleTree(leaves)
        for i, leaf in enumerate(leaves):
            proof = tree.proof(i)
            for j in range(len(proof)):
                bad = list(proof)
                bad[j] = bytes([bad[j][0] ^ 1]) + bad[j][1:]
                assert not verify(leaf, bad, tree.root, i)

    @pytest.mark.parametrize("n", [2, 4, 8])
    def test_flipped_index_parity(self, n):
        leaves = _leaves(n)
        tree = MerkleTree(leaves)
        for i, leaf in enumerate(leaves):
            assert not verify(leaf, tree.proof(i), tree.root, i ^ 1)

    @pytest.mark.parametrize("n", [2, 4, 8])
    def test_wrong_leaf(self, n):
        tree = MerkleTree(_leaves(n))
        assert not verify(b"\xee" * 32, tree.proof(0), tree.root, 0)

    def test_depth(self):
        assert MerkleTree(_leaves(8)).depth == 3
        assert len(MerkleTree(_leaves(8))) == 8

    def test_odd_level_pairs_with_itself(self):
        leaves = _leaves(3)
        tree = MerkleTree(leaves)
        right = hash_pair(leaves[2], leaves[2])
        assert tree.root == hash_pair(hash_pair(leaves[0], leaves[1]), right)
        for i, leaf in enumerate(leaves):
            assert verify(leaf, tree.proof(i), tree.root, i)


class TestSingleLeaf:
    def test_root_is_leaf(self):
        leaf = keccak256(b"only")
        tree = MerkleTree([leaf])
        assert tree.root == leaf
        assert tree.depth == 0
        assert tree.proof(0) == []

    def test_empty_proof_iff_equal(self):
        leaf = keccak256(b"only")
        assert verify(leaf, [], leaf, 0)
        assert not verify(keccak256(b"other"), [], leaf, 0)


class TestTreeErrors:
    def test_empty_tree(self):
        with pytest.raises(ValueError):
            MerkleTree([])

    def test_proof_out_of_range(self):
        tree = MerkleTree(_leaves(4))
        with pytest.raises(IndexError):
            tree.proof(4)
