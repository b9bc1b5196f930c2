import pytest

from dragon_sdk.battle import BattleExecutor
from dragon_sdk.contract import DRAGON_SATOSHIS
from dragon_sdk.dragon_types import BlockHeader, DragonState, Outpoint, TxOutput, blank_merkle_proof
from dragon_sdk.entropy import EntropySource, block_header_hash_as_int, is_valid_block_header
from dragon_sdk.ledger import Ledger
from dragon_sdk.signing import private_key_from_secret, public_key_bytes
from dragon_sdk.state_codec import build_state_script
from dragon_sdk.tx_builder import DEFAULT_CONTRACT_CODE

# Regtest-style difficulty: roughly every other nonce qualifies
EASY_BITS = 0x207fffff


def mine_header(merkle_root: bytes, accept=None, max_tries: int = 200000) -> BlockHeader:
    """
    Find a header over merkle_root that meets EASY_BITS and, optionally,
    whose rand satisfies accept(rand).
    """
    for nonce in range(max_tries):
        header = BlockHeader(
            version=0x20000000,
            prev_block_hash=b"\x11" * 32,
            merkle_root=merkle_root,
            time=1700000000,
            bits=EASY_BITS,
            nonce=nonce,
        )
        if not is_valid_block_header(header):
            continue
        if accept is None or accept(block_header_hash_as_int(header)):
            return header
    raise AssertionError("no header found")


def mint_state(ledger: Ledger, state: DragonState, inscription: bytes = b"") -> Outpoint:
    script = build_state_script(DEFAULT_CONTRACT_CODE, state, inscription)
    return ledger.mint([TxOutput(DRAGON_SATOSHIS, script)]).outpoint(0)


@pytest.fixture
def key_a():
    return private_key_from_secret(0xA11CE)


@pytest.fixture
def key_b():
    return private_key_from_secret(0xB0B)


@pytest.fixture
def key_c():
    return private_key_from_secret(0xC4A1)


@pytest.fixture
def pub_a(key_a):
    return public_key_bytes(key_a)


@pytest.fixture
def pub_b(key_b):
    return public_key_bytes(key_b)


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def entropy():
    return EntropySource()


@pytest.fixture
def executor(ledger, entropy):
    return BattleExecutor(ledger, entropy)


@pytest.fixture
def proof():
    return blank_merkle_proof()
