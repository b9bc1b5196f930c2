import pytest

from dragon_sdk.dragon_types import SENTINEL_PUBKEY, DragonState
from dragon_sdk.errors import StateEncodingError
from dragon_sdk.script_utils import build_inscription, parse_inscription
from dragon_sdk.state_codec import (
    STATE_TAIL_LEN, build_state_script, decode_state_tail, encode_state_fields,
    encode_state_tail, is_state_script, next_state_script, update_state_script_props,
)
from dragon_sdk.tx_builder import DEFAULT_CONTRACT_CODE

OWNER = b"\x02" + b"\xaa" * 32
OPPONENT = b"\x03" + b"\xbb" * 32


def test_tail_layout():
    tail = encode_state_tail(DragonState(owner_pubkey=OWNER))
    assert len(tail) == STATE_TAIL_LEN
    assert tail[0] == 0x6a
    assert tail[1] == 0x21 and tail[2:35] == OWNER
    assert tail[35:37] == b"\x01\x01"
    assert tail[37] == 0x21 and tail[38:71] == SENTINEL_PUBKEY
    assert tail[71:73] == b"\x01\x00"
    assert tail[73:75] == b"\x00\x00"
    assert tail[75:] == bytes.fromhex("4a00000000")


@pytest.mark.parametrize("power", [0, 1, 127, 128, 255])
@pytest.mark.parametrize("opponent_power", [0, 1, 200, 255])
@pytest.mark.parametrize("is_challenger", [False, True])
@pytest.mark.parametrize("is_battling", [False, True])
def test_fields_survive_encode_decode(power, opponent_power, is_challenger, is_battling):
    tail = encode_state_fields(OWNER, OPPONENT, power, opponent_power, is_challenger, is_battling)
    state = decode_state_tail(tail)
    assert state.owner_pubkey == OWNER
    assert state.opponent_pubkey == OPPONENT
    assert state.power == power
    assert state.opponent_power == opponent_power
    assert state.is_challenger is is_challenger
    assert state.is_battling is is_battling


def test_power_above_one_byte_rejected():
    with pytest.raises(StateEncodingError):
        encode_state_fields(OWNER, OPPONENT, 256, 0, False, False)
    with pytest.raises(StateEncodingError):
        encode_state_fields(OWNER, OPPONENT, 1, 256, False, False)
    with pytest.raises(ValueError):
        encode_state_tail(DragonState(owner_pubkey=OWNER, power=-1))


def test_wrong_key_length_rejected():
    with pytest.raises(StateEncodingError):
        encode_state_fields(OWNER[:32], OPPONENT, 1, 0, False, False)


def test_update_keeps_prefix():
    prefix = b"\xde\xad" * 50
    script = prefix + encode_state_tail(DragonState(owner_pubkey=OWNER))

    patched = update_state_script_props(script, OPPONENT, OWNER, 9, 4, True, True)

    assert patched[:len(prefix)] == prefix
    assert len(patched) == len(script)
    state = decode_state_tail(patched)
    assert state == DragonState(owner_pubkey=OPPONENT, power=9, opponent_pubkey=OWNER,
                                opponent_power=4, is_challenger=True, is_battling=True)


def test_decode_rejects_bad_bool():
    tail = bytearray(encode_state_tail(DragonState(owner_pubkey=OWNER)))
    tail[73] = 0x02
    with pytest.raises(StateEncodingError):
        decode_state_tail(bytes(tail))


def test_decode_rejects_bad_trailer():
    tail = bytearray(encode_state_tail(DragonState(owner_pubkey=OWNER)))
    tail[-1] = 0x01
    with pytest.raises(StateEncodingError):
        decode_state_tail(bytes(tail))
    assert not is_state_script(bytes(tail))


def test_decode_rejects_short_script():
    with pytest.raises(StateEncodingError):
        decode_state_tail(b"\x6a" * 10)


def test_next_state_strips_inscription():
    inscription = build_inscription(b"Dragon #7")
    script = build_state_script(DEFAULT_CONTRACT_CODE, DragonState(owner_pubkey=OWNER), inscription)
    assert parse_inscription(script) == ("text/plain;charset=utf-8", b"Dragon #7")

    battling = DragonState(owner_pubkey=OWNER, opponent_pubkey=OPPONENT, opponent_power=1,
                           is_challenger=True, is_battling=True)
    nxt = next_state_script(script, battling)

    assert nxt == DEFAULT_CONTRACT_CODE + encode_state_tail(battling)
    assert parse_inscription(nxt) is None


def test_earlier_deployment_layout_rejected():
    # 0121 <owner> 01 <power> 20 <32-byte opponent> 01 <opp power> 00 00 4b00000000
    earlier = (bytes([0x01, 0x21]) + OWNER + b"\x01\x01" + b"\x20" + b"\x00" * 32 +
               b"\x01\x00" + b"\x00\x00" + bytes.fromhex("4b00000000"))

    with pytest.raises(StateEncodingError):
        decode_state_tail(DEFAULT_CONTRACT_CODE + earlier)
    assert not is_state_script(DEFAULT_CONTRACT_CODE + earlier)
