"""
Satoshi Dragons SDK - Transaction Builder

Assembles mint, challenge and resolution transactions. The builder only lays
out inputs and outputs; signatures and validation belong to the callers.
"""

from typing import List, Optional, Tuple

from .contract import (
    DRAGON_SATOSHIS, battle_outputs, build_change_output, compute_outcome,
)
from .dragon_types import DragonState, Outpoint, Transaction, TxInput, TxOutput
from .script_utils import OP_DROP, build_inscription, push_data
from .state_codec import build_state_script, decode_state_tail, next_state_script

# Opaque contract body shared by every dragon; state tail is appended after it
DEFAULT_CONTRACT_CODE = push_data(b"satoshi-dragons/1") + bytes([OP_DROP])

NULL_TXID = b"\x00" * 32
COINBASE_INDEX = 0xffffffff


def build_dragon_script(owner_pubkey: bytes,
                        name: str = "",
                        code: bytes = DEFAULT_CONTRACT_CODE) -> bytes:
    """
    Locking script for a freshly minted dragon.

    Args:
        owner_pubkey: 33-byte compressed owner key
        name: inscription text; empty means no inscription
        code: contract body
    """
    inscription = build_inscription(name.encode()) if name else b""
    return build_state_script(code, DragonState(owner_pubkey=owner_pubkey), inscription)


def pair_states(challenger: DragonState, responder: DragonState) -> Tuple[DragonState, DragonState]:
    """Next states of both dragons after a challenge."""
    return (
        challenger.next(is_challenger=True, opponent_pubkey=responder.owner_pubkey,
                        opponent_power=responder.power, is_battling=True),
        responder.next(is_challenger=False, opponent_pubkey=challenger.owner_pubkey,
                       opponent_power=challenger.power, is_battling=True),
    )


def build_mint_tx(outputs: List[TxOutput], height: int) -> Transaction:
    """Coinbase-style transaction creating outputs from nothing (simulation only)."""
    coinbase = TxInput(
        outpoint=Outpoint(NULL_TXID, COINBASE_INDEX),
        script_sig=push_data(height.to_bytes(4, 'little')),
    )
    return Transaction(inputs=[coinbase], outputs=list(outputs))


def build_challenge_tx(challenger: Outpoint, challenger_script: bytes,
                       responder: Outpoint, responder_script: bytes,
                       change: Optional[TxOutput] = None) -> Transaction:
    """
    Unsigned challenge transaction.

    Input 0 / output 0 belong to the challenger, input 1 / output 1 to the
    responder. Each next state records the other dragon's owner and power.
    """
    c_state = decode_state_tail(challenger_script)
    r_state = decode_state_tail(responder_script)

    c_next, r_next = pair_states(c_state, r_state)

    outputs = [
        TxOutput(DRAGON_SATOSHIS, next_state_script(challenger_script, c_next)),
        TxOutput(DRAGON_SATOSHIS, next_state_script(responder_script, r_next)),
    ]
    if change is not None:
        outputs.append(change)

    return Transaction(
        inputs=[TxInput(challenger), TxInput(responder)],
        outputs=outputs,
    )


def build_battle_tx(challenge_txid: bytes, challenger_script: bytes, rand: int,
                    change_address: Optional[bytes] = None,
                    change_amount: int = 0,
                    funding: Optional[Outpoint] = None) -> Transaction:
    """
    Resolution transaction spending both outputs of a challenge transaction.

    The outputs are computed from the challenger's side; the responder's
    validation reaches the same list independently.

    Args:
        challenge_txid: txid (internal order) of the challenge transaction
        challenger_script: locking script of output 0 of that transaction
        rand: entropy integer derived from the block header
        change_address: 20-byte key hash for change
        change_amount: change satoshis
        funding: optional extra input paying for change and fees
    """
    state = decode_state_tail(challenger_script)
    won = compute_outcome(state.power, state.opponent_power, state.is_challenger, rand)
    outputs = battle_outputs(state, challenger_script, won,
                             build_change_output(change_address, change_amount))

    inputs = [
        TxInput(Outpoint(challenge_txid, 0)),
        TxInput(Outpoint(challenge_txid, 1)),
    ]
    if funding is not None:
        inputs.append(TxInput(funding))
    return Transaction(inputs=inputs, outputs=outputs)
