"""
Satoshi Dragons SDK - State Codec

Fixed-layout state tail at the end of every dragon locking script.

The tail is the last STATE_TAIL_LEN bytes of the script; everything before it
(contract code, and at mint time an inscription envelope) is opaque and is
carried through untouched.

Layout (80 bytes):
    6a                     OP_RETURN separator
    21 <33 owner key>
    01 <power>
    21 <33 opponent key>   all zero when idle
    01 <opponent power>
    <is challenger>        00 / 01
    <is battling>          00 / 01
    4a000000               state length (bytes between OP_RETURN and here), LE
    00                     state version

Power fields are a single unsigned byte; values above 255 do not fit.

This layout is not wire-compatible with the first on-chain deployment of the
contract. That tail opened with 0121 instead of OP_RETURN, pushed the opponent
key as 20 <32 bytes>, and closed with 4b00000000. Here every key push is 33
bytes so the all-zero opponent key has the same width as a real one. Scripts
written by that deployment fail decode_state_tail and cannot be patched by
this codec.
"""

import logging
from typing import Tuple

from .dragon_types import DragonState, PUBKEY_LEN
from .errors import StateEncodingError
from .script_utils import OP_RETURN, strip_inscription

log = logging.getLogger(__name__)

STATE_TAIL_LEN = 80
STATE_BODY_LEN = 74
STATE_VERSION = 0
MAX_POWER = 0xff

_KEY_TAG = bytes([PUBKEY_LEN])
_BYTE_TAG = b"\x01"
_TRAILER = STATE_BODY_LEN.to_bytes(4, 'little') + bytes([STATE_VERSION])

# Field offsets inside the tail
_OWNER_AT = 2
_POWER_AT = 36
_OPPONENT_AT = 38
_OPPONENT_POWER_AT = 72
_CHALLENGER_AT = 73
_BATTLING_AT = 74
_TRAILER_AT = 75


def _encode_power(value: int, name: str) -> bytes:
    if not 0 <= value <= MAX_POWER:
        raise StateEncodingError(f"{name} {value} does not fit in one byte (0..{MAX_POWER})")
    return bytes([value])


def _encode_key(key: bytes, name: str) -> bytes:
    if len(key) != PUBKEY_LEN:
        raise StateEncodingError(f"{name} must be {PUBKEY_LEN} bytes, got {len(key)}")
    return _KEY_TAG + key


def _decode_bool(value: int, name: str) -> bool:
    if value not in (0, 1):
        raise StateEncodingError(f"{name} byte must be 00 or 01, got {value:02x}")
    return value == 1


def encode_state_fields(owner_pubkey: bytes,
                        opponent_pubkey: bytes,
                        power: int,
                        opponent_power: int,
                        is_challenger: bool,
                        is_battling: bool) -> bytes:
    """Canonical 80-byte tail for the given field values."""
    return (
        bytes([OP_RETURN]) +
        _encode_key(owner_pubkey, "owner key") +
        _BYTE_TAG + _encode_power(power, "power") +
        _encode_key(opponent_pubkey, "opponent key") +
        _BYTE_TAG + _encode_power(opponent_power, "opponent power") +
        (b"\x01" if is_challenger else b"\x00") +
        (b"\x01" if is_battling else b"\x00") +
        _TRAILER
    )


def encode_state_tail(state: DragonState) -> bytes:
    return encode_state_fields(
        state.owner_pubkey,
        state.opponent_pubkey,
        state.power,
        state.opponent_power,
        state.is_challenger,
        state.is_battling,
    )


def split_state_script(script: bytes) -> Tuple[bytes, bytes]:
    """(opaque prefix, state tail)"""
    if len(script) < STATE_TAIL_LEN:
        raise StateEncodingError(
            f"script too short for state tail: {len(script)} < {STATE_TAIL_LEN}")
    cut = len(script) - STATE_TAIL_LEN
    return script[:cut], script[cut:]


def decode_state_tail(script: bytes) -> DragonState:
    """
    Read dragon state from the tail of a locking script.

    Args:
        script: full locking script (or just the 80-byte tail)

    Returns:
        DragonState with the decoded field values

    Raises:
        StateEncodingError: if the tail does not have the canonical layout
    """
    _, tail = split_state_script(script)
    if tail[0] != OP_RETURN:
        raise StateEncodingError("state tail does not start with OP_RETURN")
    if tail[1:2] != _KEY_TAG or tail[_OPPONENT_AT - 1:_OPPONENT_AT] != _KEY_TAG:
        raise StateEncodingError("bad key push tag in state tail")
    if tail[_POWER_AT - 1:_POWER_AT] != _BYTE_TAG or \
            tail[_OPPONENT_POWER_AT - 1:_OPPONENT_POWER_AT] != _BYTE_TAG:
        raise StateEncodingError("bad power push tag in state tail")
    if tail[_TRAILER_AT:] != _TRAILER:
        raise StateEncodingError(f"bad state trailer: {tail[_TRAILER_AT:].hex()}")

    return DragonState(
        owner_pubkey=tail[_OWNER_AT:_OWNER_AT + PUBKEY_LEN],
        power=tail[_POWER_AT],
        opponent_pubkey=tail[_OPPONENT_AT:_OPPONENT_AT + PUBKEY_LEN],
        opponent_power=tail[_OPPONENT_POWER_AT],
        is_challenger=_decode_bool(tail[_CHALLENGER_AT], "is_challenger"),
        is_battling=_decode_bool(tail[_BATTLING_AT], "is_battling"),
    )


def is_state_script(script: bytes) -> bool:
    """True if the script ends in a well-formed dragon state tail."""
    try:
        decode_state_tail(script)
    except StateEncodingError:
        return False
    return True


def update_state_script_props(script: bytes,
                              owner_pubkey: bytes,
                              opponent_pubkey: bytes,
                              power: int,
                              opponent_power: int,
                              is_challenger: bool,
                              is_battling: bool) -> bytes:
    """
    Replace the state tail of a script, keeping every prefix byte.

    Works on raw bytes only, so it can rebuild an opponent's next output
    without a live object for that opponent.
    """
    prefix, _ = split_state_script(script)
    return prefix + encode_state_fields(
        owner_pubkey, opponent_pubkey, power, opponent_power, is_challenger, is_battling)


def next_state_script(script: bytes, state: DragonState) -> bytes:
    """Locking script for the next output: inscription dropped, tail re-encoded."""
    return update_state_script_props(
        strip_inscription(script),
        state.owner_pubkey,
        state.opponent_pubkey,
        state.power,
        state.opponent_power,
        state.is_challenger,
        state.is_battling,
    )


def build_state_script(code: bytes, state: DragonState, inscription: bytes = b"") -> bytes:
    """Fresh locking script: [inscription] code tail."""
    script = inscription + code + encode_state_tail(state)
    log.debug(f"Built state script ({len(script)} bytes, power={state.power})")
    return script
