"""
Satoshi Dragons SDK - Prevout Linker

Proves from the raw prevouts blob alone that the two dragons spent by a
resolution were created together by one challenge transaction: challenger at
output 0, responder at output 1 of the same txid.
"""

import logging
from typing import Iterable

from .dragon_types import Outpoint
from .errors import PrevoutLinkError

log = logging.getLogger(__name__)

OUTPOINT_LEN = 36
TXID_LEN = 32

CHALLENGER_INDEX = 0
RESPONDER_INDEX = 1


def serialize_prevouts(outpoints: Iterable[Outpoint]) -> bytes:
    return b"".join(op.serialize() for op in outpoints)


def prevout_at(prevouts: bytes, input_index: int) -> Outpoint:
    """Outpoint spent by the given input, sliced from the prevouts blob."""
    start = input_index * OUTPOINT_LEN
    chunk = prevouts[start:start + OUTPOINT_LEN]
    if len(chunk) != OUTPOINT_LEN:
        raise PrevoutLinkError(f"no prevout for input {input_index}")
    return Outpoint.parse(chunk)


def check_battle_prevouts(is_challenger: bool, own_outpoint: Outpoint, prevouts: bytes) -> None:
    """
    Verify the pairing linkage for one side of a resolution.

    Args:
        is_challenger: role recorded in the executing dragon's state
        own_outpoint: outpoint the executing dragon is spent from
        prevouts: concatenated outpoints of the enclosing transaction

    Raises:
        PrevoutLinkError: on any mismatch
    """
    if is_challenger:
        if own_outpoint.index != CHALLENGER_INDEX:
            raise PrevoutLinkError("wrong output index")
        other = prevout_at(prevouts, 1)
        if other.txid != own_outpoint.txid:
            raise PrevoutLinkError("second input wrong txid")
        if other.index != RESPONDER_INDEX:
            raise PrevoutLinkError("second input wrong output index")
    else:
        if own_outpoint.index != RESPONDER_INDEX:
            raise PrevoutLinkError("wrong output index")
        other = prevout_at(prevouts, 0)
        if other.txid != own_outpoint.txid:
            raise PrevoutLinkError("first input wrong txid")
        if other.index != CHALLENGER_INDEX:
            raise PrevoutLinkError("first input wrong output index")

    log.debug(f"Prevouts linked: {own_outpoint.txid_hex[:16]}... "
              f"({'challenger' if is_challenger else 'responder'})")
