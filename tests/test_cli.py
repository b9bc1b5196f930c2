import json

from dragon_sdk.cli import main
from dragon_sdk.dragon_types import DragonState
from dragon_sdk.script_utils import push_data
from dragon_sdk.state_codec import encode_state_tail
from dragon_sdk.tx_builder import DEFAULT_CONTRACT_CODE, build_dragon_script

OWNER = b"\x02" + b"\xaa" * 32


def test_decode(capsys):
    script = build_dragon_script(OWNER, "Dragon #9")
    assert main(["decode", script.hex()]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["state"]["power"] == 1
    assert out["idle"] is True
    assert out["inscription"]["payload"] == "Dragon #9"


def test_decode_bad_script(capsys):
    assert main(["decode", "6a6a"]) == 1
    assert "Error" in capsys.readouterr().err


def test_decode_envelope_without_content_type(capsys):
    script = (bytes([0x00, 0x63]) + push_data(b"ord") + bytes([0x68]) +
              DEFAULT_CONTRACT_CODE + encode_state_tail(DragonState(owner_pubkey=OWNER)))
    assert main(["decode", script.hex()]) == 1
    assert "malformed" in capsys.readouterr().err


def test_outcome_from_rand(capsys):
    assert main(["outcome", "--power", "5", "--opponent-power", "5", "--rand", "400"]) == 0
    out = capsys.readouterr().out
    assert "WON" in out
    assert "5 -> 6" in out


def test_outcome_as_responder(capsys):
    assert main(["outcome", "--power", "5", "--opponent-power", "5",
                 "--rand", "0x190", "--responder"]) == 0
    out = capsys.readouterr().out
    assert "LOST" in out
    assert "Opp power: 5 -> 6" in out


def test_outcome_needs_entropy(capsys):
    assert main(["outcome", "--power", "1", "--opponent-power", "1"]) == 1


def test_odds(capsys):
    assert main(["odds", "--power", "1", "--opponent-power", "3"]) == 0
    assert "0.2500 (1/4)" in capsys.readouterr().out


def test_no_command(capsys):
    assert main([]) == 1


def test_odds_negative_power(capsys):
    assert main(["odds", "--power", "-1", "--opponent-power", "3"]) == 1
