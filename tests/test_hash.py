"""
Unit tests for otsproof.hash and otsproof.address: Keccak-256, Solidity
encodings, unit conversion and Ethereum addresses.
"""

from decimal import Decimal

import pytest

from otsproof.address import address_bytes, to_address, to_checksum_address
from otsproof.curve import G, scalar_multiply
from otsproof.hash import (
    abi_encode,
    encode_packed,
    eth_signed_message_hash,
    keccak256,
    to_bytes32,
    to_wei,
)

ADDR = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class TestKeccak:
    def test_empty_input(self):
        """Original Keccak, not NIST SHA3-256."""
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_parts_are_concatenated(self):
        assert keccak256(b"ab", b"c") == keccak256(b"abc")

    def test_personal_prefix(self):
        digest = keccak256(b"x")
        expected = keccak256(b"\x19Ethereum Signed Message:\n32" + digest)
        assert eth_signed_message_hash(digest) == expected

    def test_personal_requires_32_bytes(self):
        with pytest.raises(ValueError):
            eth_signed_message_hash(b"short")


class TestEncoding:
    def test_packed_widths(self):
        root = b"\xab" * 32
        out = encode_packed(
            ["address", "uint256", "bytes32", "uint256"], [ADDR, 1, root, 31337]
        )
        assert len(out) == 20 + 32 + 32 + 32
        assert out[:20] == address_bytes(ADDR)
        assert out[20:52] == (1).to_bytes(32, "big")
        assert out[52:84] == root

    def test_abi_encode_pads_address(self):
        out = abi_encode(["address", "uint256", "uint256"], [ADDR, 5, 7])
        assert len(out) == 96
        assert out[:12] == b"\x00" * 12
        assert out[12:32] == address_bytes(ADDR)

    def test_encodings_differ(self):
        types, values = ["address", "uint256"], [ADDR, 1]
        assert encode_packed(types, values) != abi_encode(types, values)

    def test_uint256_range(self):
        with pytest.raises(ValueError):
            encode_packed(["uint256"], [-1])
        with pytest.raises(ValueError):
            encode_packed(["uint256"], [2**256])

    def test_unsupported_type(self):
        with pytest.raises(ValueError):
            encode_packed(["string"], ["hi"])

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            abi_encode(["uint256"], [1, 2])

    def test_to_bytes32(self):
        assert to_bytes32("0x" + "11" * 32) == b"\x11" * 32
        with pytest.raises(ValueError):
            to_bytes32(b"\x00" * 31)


class TestToWei:
    @pytest.mark.parametrize("amount, wei", [
        ("0.1", 10**17),
        ("1", 10**18),
        (Decimal("0.000000000000000001"), 1),
        (2, 2 * 10**18),
        ("0", 0),
    ])
    def test_conversion(self, amount, wei):
        assert to_wei(amount) == wei

    def test_float_refused(self):
        with pytest.raises(TypeError):
            to_wei(0.1)

    def test_too_many_decimals(self):
        with pytest.raises(ValueError):
            to_wei("0.0000000000000000001")

    def test_negative(self):
        with pytest.raises(ValueError):
            to_wei("-1")

    def test_garbage(self):
        with pytest.raises(ValueError):
            to_wei("ten")


class TestAddress:
    def test_private_key_one(self):
        assert to_checksum_address(to_address(G)) == (
            "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
        )

    def test_known_dev_account(self):
        d = 0xAC0974BEC39A17E36BA4A6B4D238FF944BACB478CBED5EFCAE784D7BF4F2FF80
        assert to_checksum_address(to_address(scalar_multiply(d))) == (
            "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
        )

    @pytest.mark.parametrize("addr", [
        "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
        "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
        "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
        "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb",
    ])
    def test_eip55_vectors(self, addr):
        assert to_checksum_address(addr.lower()) == addr
        assert address_bytes(addr) == bytes.fromhex(addr[2:])

    def test_bad_checksum_rejected(self):
        with pytest.raises(ValueError):
            address_bytes("0x5AAeb6053F3E94C9b9A09f33669435E7Ef1BeAed")

    def test_single_case_accepted(self):
        raw = address_bytes(ADDR)
        assert address_bytes(ADDR.lower()) == raw
        assert address_bytes("0x" + ADDR[2:].upper()) == raw

    def test_wrong_length(self):
        with pytest.raises(ValueError):
            address_bytes(b"\x00" * 19)
        with pytest.raises(ValueError):
            address_bytes("0x1234")

    def test_wrong_type(self):
        with pytest.raises(TypeError):
            address_bytes(12345)
