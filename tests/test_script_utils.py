import pytest

from dragon_sdk.dragon_types import Outpoint, Transaction, TxInput, TxOutput
from dragon_sdk.script_utils import (
    MAINNET_PUBKEY_VERSION, address_to_hash, build_inscription, build_p2pkh_script,
    encode_varint, hash160, is_p2pkh, parse_inscription, push_data, read_push,
    read_varint, serialize_output, strip_inscription, pubkey_to_address,
)

# Compressed public key for secret exponent 1 (the secp256k1 generator)
G_PUBKEY = bytes.fromhex("0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798")


def test_generator_address():
    assert hash160(G_PUBKEY).hex() == "751e76e8199196d454941c45d1b3a323f1433bd6"
    assert pubkey_to_address(G_PUBKEY, MAINNET_PUBKEY_VERSION) == "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"
    assert address_to_hash("1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH") == hash160(G_PUBKEY)


def test_bad_address_checksum():
    with pytest.raises(ValueError):
        address_to_hash("1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMJ")


@pytest.mark.parametrize("n,encoded", [
    (0, "00"), (0xfc, "fc"), (0xfd, "fdfd00"), (0xffff, "fdffff"),
    (0x10000, "fe00000100"), (0x100000000, "ff0000000001000000"),
])
def test_varint(n, encoded):
    assert encode_varint(n).hex() == encoded
    assert read_varint(bytes.fromhex(encoded)) == (n, len(encoded) // 2)


def test_push_data_sizes():
    assert push_data(b"\x01" * 0x4b)[0] == 0x4b
    assert push_data(b"\x01" * 0x4c)[:2] == b"\x4c\x4c"
    assert push_data(b"\x01" * 0x100)[:3] == b"\x4d\x00\x01"
    assert read_push(push_data(b"\x01" * 300), 0) == (None, b"\x01" * 300, 303)
    assert read_push(b"\x75", 0) == (0x75, None, 1)


def test_p2pkh_output():
    script = build_p2pkh_script(hash160(G_PUBKEY))
    assert is_p2pkh(script)
    assert serialize_output(1, script) == (1).to_bytes(8, "little") + b"\x19" + script


def test_inscription_envelope():
    payload = b"x" * 600
    envelope = build_inscription(payload, "image/png")
    script = envelope + b"\x51\x75"

    assert parse_inscription(script) == ("image/png", payload)
    assert strip_inscription(script) == b"\x51\x75"
    assert strip_inscription(b"\x51\x75") == b"\x51\x75"
    assert parse_inscription(b"\x00\x63\x51") is None


def test_unterminated_envelope():
    with pytest.raises(ValueError):
        strip_inscription(build_inscription(b"abc")[:-1])


def test_transaction_parse_matches_serialize():
    tx = Transaction(
        inputs=[TxInput(Outpoint(b"\x09" * 32, 1), push_data(b"\x30" * 71), 0xfffffffe)],
        outputs=[TxOutput(1, build_p2pkh_script(hash160(G_PUBKEY))), TxOutput(0, b"\x6a")],
        locktime=500,
    )
    parsed = Transaction.parse(tx.serialize())
    assert parsed == tx
    assert parsed.txid == tx.txid
    assert Outpoint.from_string(str(tx.outpoint(1))) == tx.outpoint(1)


@pytest.mark.parametrize("script", [b"\x4c", b"\x4d\x01", b"\x4e\x00\x00", b"\x4c\x05ab"])
def test_truncated_push(script):
    with pytest.raises(ValueError):
        read_push(script, 0)


def test_envelope_without_content_type():
    bare = bytes([0x00, 0x63]) + push_data(b"ord") + bytes([0x68]) + b"\x51\x75"

    with pytest.raises(ValueError, match="malformed"):
        parse_inscription(bare)
    assert strip_inscription(bare) == b"\x51\x75"
