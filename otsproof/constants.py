"""
Protocol constants for the withdrawal-proof engine.

secp256k1 domain parameters (SEC 2 v2 §2.4.1), the Winternitz
parameter set shared with the on-chain verifier, and the threshold
configuration of the DKG node quorum.  Everything here is a plain
module-level constant; per-call overrides are passed explicitly to
:class:`otsproof.protocol.WithdrawalProofBuilder`.
"""

# ── secp256k1 ───────────────────────────────────────────────────────────

# Prime modulus of the base field,  p = 2^256 - 2^32 - 977
FIELD_PRIME: int = 2**256 - 2**32 - 977

# Order n of the group generated by G
ORDER: int = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Curve  y^2 = x^3 + B
CURVE_B: int = 7

# Generator coordinates
G_X: int = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
G_Y: int = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8

SCALAR_BYTES = 32
ADDRESS_BYTES = 20
HASH_BYTES = 32

# ── threshold quorum ────────────────────────────────────────────────────

# 2-of-3 across the DKG nodes
THRESHOLD: int = 2
NUM_NODES: int = 3

# ── Winternitz one-time signatures ──────────────────────────────────────

WOTS_W: int = 16                      # 4 bits per digit
WOTS_LOG_W: int = 4
WOTS_MESSAGE_DIGITS: int = 64         # 256-bit digest / 4 bits
WOTS_CHECKSUM_DIGITS: int = 3
WOTS_LEN: int = WOTS_MESSAGE_DIGITS + WOTS_CHECKSUM_DIGITS   # 67
WOTS_CHECKSUM_MASK: int = 0xFFF       # 3 nibbles

# ── chain / units ───────────────────────────────────────────────────────

WEI_PER_ETHER: int = 10**18
DEFAULT_CHAIN_ID: int = 31337         # local development chain
