import pytest

from dragon_sdk.dragon_types import Outpoint
from dragon_sdk.errors import PrevoutLinkError
from dragon_sdk.prevouts import check_battle_prevouts, prevout_at, serialize_prevouts

CHALLENGE_TXID = bytes(range(32))
OTHER_TXID = bytes(range(32, 64))


def test_paired_outpoints_pass_both_sides():
    prevouts = serialize_prevouts([Outpoint(CHALLENGE_TXID, 0), Outpoint(CHALLENGE_TXID, 1)])
    assert len(prevouts) == 72

    check_battle_prevouts(True, Outpoint(CHALLENGE_TXID, 0), prevouts)
    check_battle_prevouts(False, Outpoint(CHALLENGE_TXID, 1), prevouts)


def test_extra_funding_input_is_ignored():
    prevouts = serialize_prevouts([
        Outpoint(CHALLENGE_TXID, 0), Outpoint(CHALLENGE_TXID, 1), Outpoint(OTHER_TXID, 3),
    ])
    check_battle_prevouts(True, Outpoint(CHALLENGE_TXID, 0), prevouts)
    check_battle_prevouts(False, Outpoint(CHALLENGE_TXID, 1), prevouts)


def test_unrelated_opponent_rejected():
    prevouts = serialize_prevouts([Outpoint(CHALLENGE_TXID, 0), Outpoint(OTHER_TXID, 1)])

    with pytest.raises(PrevoutLinkError, match="second input wrong txid"):
        check_battle_prevouts(True, Outpoint(CHALLENGE_TXID, 0), prevouts)
    with pytest.raises(PrevoutLinkError, match="first input wrong txid"):
        check_battle_prevouts(False, Outpoint(OTHER_TXID, 1), prevouts)


def test_swapped_slots_rejected():
    prevouts = serialize_prevouts([Outpoint(CHALLENGE_TXID, 1), Outpoint(CHALLENGE_TXID, 0)])

    with pytest.raises(PrevoutLinkError, match="wrong output index"):
        check_battle_prevouts(True, Outpoint(CHALLENGE_TXID, 1), prevouts)
    with pytest.raises(PrevoutLinkError, match="wrong output index"):
        check_battle_prevouts(False, Outpoint(CHALLENGE_TXID, 0), prevouts)


def test_wrong_partner_index_rejected():
    prevouts = serialize_prevouts([Outpoint(CHALLENGE_TXID, 0), Outpoint(CHALLENGE_TXID, 2)])
    with pytest.raises(PrevoutLinkError, match="second input wrong output index"):
        check_battle_prevouts(True, Outpoint(CHALLENGE_TXID, 0), prevouts)


def test_missing_partner_rejected():
    prevouts = serialize_prevouts([Outpoint(CHALLENGE_TXID, 0)])
    with pytest.raises(PrevoutLinkError):
        check_battle_prevouts(True, Outpoint(CHALLENGE_TXID, 0), prevouts)
    with pytest.raises(PrevoutLinkError):
        prevout_at(prevouts, 1)
