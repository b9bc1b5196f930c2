"""
Satoshi Dragons SDK - Entropy Source

Turns a block header into the battle's random integer, after checking that the
header meets its difficulty target and that the challenge transaction is in
that block.
"""

import logging
from typing import Sequence

from .dragon_types import BlockHeader, MerkleNode
from .errors import EntropyError
from .script_utils import hash256

log = logging.getLogger(__name__)

# Accept any header hash unless a tighter target is configured
MAX_TARGET = 2 ** 256 - 1

MERKLE_DEPTH = 32
INVALID_NODE = 0
LEFT_NODE = 1
RIGHT_NODE = 2


def bits_to_target(bits: int) -> int:
    exp = (bits >> 24) & 0xff
    mant = bits & 0x007fffff
    if exp >= 3:
        return mant << (8 * (exp - 3))
    else:
        return mant >> (8 * (3 - exp))


def block_header_hash_as_int(header: BlockHeader) -> int:
    """hash256 of the serialized header, read as an unsigned little-endian integer."""
    return int.from_bytes(header.hash(), 'little')


def is_valid_block_header(header: BlockHeader, target: int = MAX_TARGET) -> bool:
    """Header hash must not exceed its own bits target nor the configured one."""
    value = block_header_hash_as_int(header)
    return value <= bits_to_target(header.bits) and value <= target


def calc_merkle_root(leaf: bytes, proof: Sequence[MerkleNode]) -> bytes:
    root = leaf
    for node in proof:
        if node.pos == LEFT_NODE:
            root = hash256(node.hash + root)
        elif node.pos == RIGHT_NODE:
            root = hash256(root + node.hash)
        elif node.pos != INVALID_NODE:
            raise EntropyError(f"invalid merkle node position: {node.pos}")
    return root


def tx_in_block(txid: bytes, header: BlockHeader, proof: Sequence[MerkleNode]) -> bool:
    """
    Check merkle inclusion of a transaction.

    Args:
        txid: transaction id in internal byte order
        header: block header claimed to contain it
        proof: merkle path from the txid up to the root
    """
    if len(proof) != MERKLE_DEPTH:
        raise EntropyError(f"merkle proof must have {MERKLE_DEPTH} nodes, got {len(proof)}")
    return calc_merkle_root(txid, proof) == header.merkle_root


class EntropySource:
    """
    Derives the battle random integer from a validated block header.

    Usage:
        entropy = EntropySource()
        rand = entropy.derive(header, proof, challenge_txid)
    """

    def __init__(self, validate: bool = True, target: int = MAX_TARGET):
        """
        Args:
            validate: check difficulty and merkle inclusion before deriving
            target: extra upper bound on the header hash
        """
        self.validate = validate
        self.target = target
        if not validate:
            log.warning("Entropy validation is DISABLED; headers are not checked")

    def derive(self, header: BlockHeader, proof: Sequence[MerkleNode], txid: bytes) -> int:
        """
        Returns:
            header hash as integer

        Raises:
            EntropyError: if validation is on and the header or proof is bad
        """
        if self.validate:
            if not is_valid_block_header(header, self.target):
                raise EntropyError("invalid block header")
            if not tx_in_block(txid, header, proof):
                raise EntropyError("invalid merkle proof")
        rand = block_header_hash_as_int(header)
        log.debug(f"Entropy derived from header {header.hash()[::-1].hex()[:16]}...")
        return rand
