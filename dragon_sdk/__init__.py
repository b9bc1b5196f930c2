"""
Satoshi Dragons SDK

Two-party dragon battles settled entirely by self-validating outputs.

Architecture:
  - Each dragon carries its state in the last 80 bytes of its locking script
  - CHALLENGE pairs two idle dragons; each owner signs only their own half
  - BATTLE_EXEC resolves the pairing from block-header entropy; both dragons
    re-derive the same winner and the same output list independently
  - No arbiter: a resolution is valid only if both validators accept it

Outcome:
  - pick = rand mod (100 * (power + opponent_power))
  - Challenger wins iff pick < 100 * power
  - Winner: power + 1, back to idle
  - Loser: paid out one satoshi, its opponent_power bumped by one

Usage:
    from dragon_sdk import BattleExecutor, EntropySource, Ledger, private_key_from_secret

    ledger = Ledger()
    executor = BattleExecutor(ledger, EntropySource())

    key_a = private_key_from_secret(1)
    key_b = private_key_from_secret(2)
    a = executor.mint(key_a, "Dragon #0")
    b = executor.mint(key_b, "Dragon #1")

    challenge_tx = executor.challenge(a, key_a, b, key_b)
    result = executor.resolve(challenge_tx.txid, header, proof)
"""

from .dragon_types import (
    BattleRole, BlockHeader, DragonState, MerkleNode, Outpoint,
    SENTINEL_PUBKEY, Transaction, TxInput, TxOutput, blank_merkle_proof,
)
from .errors import (
    AuthorizationError, DragonError, EntropyError, InvalidStateError, LedgerError,
    OutputsMismatchError, PrevoutLinkError, StateEncodingError,
)
from .state_codec import (
    STATE_TAIL_LEN,
    decode_state_tail,
    encode_state_tail,
    next_state_script,
    update_state_script_props,
)
from .prevouts import check_battle_prevouts, serialize_prevouts
from .entropy import EntropySource, is_valid_block_header, tx_in_block
from .signing import private_key_from_secret, public_key_bytes, sign_input
from .contract import (
    DragonContract, ScriptContext, BattleResult,
    battle_outputs, compute_outcome, resolve_state, win_probability,
)
from .tx_builder import build_battle_tx, build_challenge_tx, build_dragon_script
from .ledger import ContractCall, Ledger
from .battle import BattleExecutor, ResolveResult
from .rpc_client import RPCClient, RPCError
from .config import Config, load_config

__version__ = "0.1.0"
__all__ = [
    # Types
    "DragonState", "BattleRole", "Outpoint", "TxInput", "TxOutput",
    "Transaction", "BlockHeader", "MerkleNode", "SENTINEL_PUBKEY",
    "blank_merkle_proof",
    # Errors
    "DragonError", "AuthorizationError", "OutputsMismatchError",
    "PrevoutLinkError", "EntropyError", "InvalidStateError", "StateEncodingError",
    "LedgerError",
    # Output encoder / linker / entropy
    "STATE_TAIL_LEN", "encode_state_tail", "decode_state_tail",
    "update_state_script_props", "next_state_script",
    "check_battle_prevouts", "serialize_prevouts",
    "EntropySource", "is_valid_block_header", "tx_in_block",
    # Contract
    "DragonContract", "ScriptContext", "BattleResult", "battle_outputs",
    "compute_outcome", "resolve_state", "win_probability",
    # Flows
    "build_dragon_script", "build_challenge_tx", "build_battle_tx",
    "Ledger", "ContractCall", "BattleExecutor", "ResolveResult",
    "private_key_from_secret", "public_key_bytes", "sign_input",
    # Node / config
    "RPCClient", "RPCError", "Config", "load_config",
]
