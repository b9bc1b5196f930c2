import pytest

from dragon_sdk.dragon_types import SENTINEL_PUBKEY, BattleRole, DragonState, Outpoint

OWNER = b"\x02" + b"\xaa" * 32
OPPONENT = b"\x03" + b"\xbb" * 32


def test_new_dragon_is_idle():
    state = DragonState(owner_pubkey=OWNER)
    assert state.power == 1
    assert state.opponent_pubkey == SENTINEL_PUBKEY
    assert state.is_idle()
    state.validate()


def test_validate_rejects_broken_states():
    with pytest.raises(ValueError):
        DragonState(owner_pubkey=OWNER, power=0).validate()
    with pytest.raises(ValueError):
        DragonState(owner_pubkey=OWNER, is_battling=True).validate()
    with pytest.raises(ValueError):
        DragonState(owner_pubkey=OWNER[:20]).validate()


def test_role():
    assert DragonState(owner_pubkey=OWNER, is_challenger=True).role is BattleRole.CHALLENGER
    assert DragonState(owner_pubkey=OWNER).role.output_index == 1


def test_json():
    state = DragonState(owner_pubkey=OWNER, power=7, opponent_pubkey=OPPONENT,
                        opponent_power=3, is_challenger=True, is_battling=True)
    assert DragonState.from_json(state.to_json()) == state
    assert state.next(power=8).power == 8
    assert state.power == 7


def test_outpoint_string():
    op = Outpoint.from_string("ab" * 31 + "cd:3")
    assert op.index == 3
    assert op.txid[0] == 0xcd
    assert str(op) == "ab" * 31 + "cd:3"
    with pytest.raises(ValueError):
        Outpoint.from_string("3")
    with pytest.raises(ValueError):
        Outpoint.parse(b"\x00" * 35)
