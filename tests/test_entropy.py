from dataclasses import replace

import pytest

from conftest import EASY_BITS, mine_header
from dragon_sdk.dragon_types import BlockHeader, MerkleNode, blank_merkle_proof
from dragon_sdk.entropy import (
    LEFT_NODE, RIGHT_NODE, EntropySource, bits_to_target, block_header_hash_as_int,
    calc_merkle_root, is_valid_block_header, tx_in_block,
)
from dragon_sdk.errors import EntropyError
from dragon_sdk.script_utils import hash256

TXID = hash256(b"challenge")


def test_bits_to_target():
    assert bits_to_target(0x1d00ffff) == 0xffff << (8 * (0x1d - 3))
    assert bits_to_target(EASY_BITS) == 0x7fffff << (8 * (0x20 - 3))


def test_header_serializes_to_80_bytes():
    header = mine_header(TXID)
    raw = header.serialize()
    assert len(raw) == 80
    assert BlockHeader.parse(raw) == header
    assert BlockHeader.from_dict({"raw": raw.hex()}) == header
    assert BlockHeader.from_dict(header.to_dict()) == header
    assert block_header_hash_as_int(header) == int.from_bytes(hash256(raw), "little")


def test_header_above_target_rejected():
    header = mine_header(TXID)
    assert is_valid_block_header(header)
    assert not is_valid_block_header(header, target=0)
    assert not is_valid_block_header(replace(header, bits=0x03000001))


def test_merkle_path():
    sibling = hash256(b"sibling")
    uncle = hash256(b"uncle")
    proof = [MerkleNode(sibling, RIGHT_NODE), MerkleNode(uncle, LEFT_NODE)]
    proof += blank_merkle_proof(30)

    root = hash256(uncle + hash256(TXID + sibling))
    assert calc_merkle_root(TXID, proof) == root

    header = mine_header(root)
    assert tx_in_block(TXID, header, proof)
    assert not tx_in_block(hash256(b"other"), header, proof)


def test_proof_must_have_full_depth():
    header = mine_header(TXID)
    with pytest.raises(EntropyError):
        tx_in_block(TXID, header, blank_merkle_proof(31))


def test_bad_node_position_rejected():
    with pytest.raises(EntropyError):
        calc_merkle_root(TXID, [MerkleNode(TXID, 7)])


def test_derive_validates_by_default():
    entropy = EntropySource()
    header = mine_header(TXID)
    assert entropy.derive(header, blank_merkle_proof(), TXID) == block_header_hash_as_int(header)

    with pytest.raises(EntropyError, match="merkle"):
        entropy.derive(header, blank_merkle_proof(), hash256(b"other"))
    with pytest.raises(EntropyError, match="header"):
        EntropySource(target=0).derive(header, blank_merkle_proof(), TXID)


def test_derive_without_validation():
    entropy = EntropySource(validate=False)
    header = replace(mine_header(TXID), merkle_root=b"\x00" * 32, bits=0x03000001)
    assert entropy.derive(header, [], TXID) == block_header_hash_as_int(header)
