"""
Satoshi Dragons SDK - Signing

BIP143-style sighash preimages (with FORKID) and secp256k1 ECDSA signatures.
"""

import hashlib
import secrets
from typing import Tuple

from ecdsa import SECP256k1, SigningKey, VerifyingKey, util
from ecdsa.der import UnexpectedDER
from ecdsa.keys import BadSignatureError, MalformedPointError

from .dragon_types import Transaction
from .script_utils import encode_varint, hash160, hash256, is_p2pkh, push_data, read_push

SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_FORKID = 0x40
SIGHASH_ANYONECANPAY = 0x80

_ZERO_HASH = b"\x00" * 32


def _base_type(sighash: int) -> int:
    return sighash & 0x1f


def hash_prevouts(tx: Transaction, sighash: int) -> bytes:
    if sighash & SIGHASH_ANYONECANPAY:
        return _ZERO_HASH
    return hash256(tx.prevouts())


def hash_sequence(tx: Transaction, sighash: int) -> bytes:
    if sighash & SIGHASH_ANYONECANPAY or _base_type(sighash) in (SIGHASH_SINGLE, SIGHASH_NONE):
        return _ZERO_HASH
    return hash256(b"".join(txin.sequence.to_bytes(4, 'little') for txin in tx.inputs))


def committed_outputs(tx: Transaction, input_index: int, sighash: int) -> bytes:
    """Serialized outputs a signature of this type commits to."""
    base = _base_type(sighash)
    if base == SIGHASH_SINGLE:
        if input_index >= len(tx.outputs):
            return b""
        return tx.outputs[input_index].serialize()
    if base == SIGHASH_NONE:
        return b""
    return b"".join(txout.serialize() for txout in tx.outputs)


def hash_outputs(tx: Transaction, input_index: int, sighash: int) -> bytes:
    outputs = committed_outputs(tx, input_index, sighash)
    if not outputs:
        return _ZERO_HASH
    return hash256(outputs)


def sighash_preimage(tx: Transaction, input_index: int, script_code: bytes,
                     value: int, sighash: int) -> bytes:
    txin = tx.inputs[input_index]
    data = b''
    data += tx.version.to_bytes(4, 'little')
    data += hash_prevouts(tx, sighash)
    data += hash_sequence(tx, sighash)
    data += txin.outpoint.serialize()
    data += encode_varint(len(script_code)) + script_code
    data += value.to_bytes(8, 'little')
    data += txin.sequence.to_bytes(4, 'little')
    data += hash_outputs(tx, input_index, sighash)
    data += tx.locktime.to_bytes(4, 'little')
    data += sighash.to_bytes(4, 'little')
    return data


def sighash_digest(tx: Transaction, input_index: int, script_code: bytes,
                   value: int, sighash: int) -> bytes:
    return hash256(sighash_preimage(tx, input_index, script_code, value, sighash))


# ═══════════════════════════════════════════════════════════════════════════════
# KEYS / SIGNATURES
# ═══════════════════════════════════════════════════════════════════════════════

def generate_private_key() -> SigningKey:
    return private_key_from_secret(secrets.randbelow(SECP256k1.order - 1) + 1)


def private_key_from_secret(secret: int) -> SigningKey:
    return SigningKey.from_secret_exponent(secret, curve=SECP256k1, hashfunc=hashlib.sha256)


def public_key_bytes(key: SigningKey) -> bytes:
    """33-byte compressed public key."""
    return key.get_verifying_key().to_string("compressed")


def sign_digest(key: SigningKey, digest: bytes, sighash: int) -> bytes:
    """DER signature (low-S) followed by the sighash type byte."""
    if len(digest) != 32:
        raise ValueError("sign_digest expects a 32-byte digest")
    der = key.sign_digest_deterministic(
        digest, hashfunc=hashlib.sha256, sigencode=util.sigencode_der_canonize)
    return der + bytes([sighash])


def sign_input(key: SigningKey, tx: Transaction, input_index: int,
               script_code: bytes, value: int, sighash: int) -> bytes:
    digest = sighash_digest(tx, input_index, script_code, value, sighash)
    return sign_digest(key, digest, sighash)


def split_signature(sig: bytes) -> Tuple[bytes, int]:
    """(DER part, sighash type)"""
    if len(sig) < 2:
        raise ValueError("signature too short")
    return sig[:-1], sig[-1]


def check_sig(sig: bytes, pubkey: bytes, digest: bytes) -> bool:
    """Verify a DER+sighash signature over a 32-byte digest."""
    try:
        der, _ = split_signature(sig)
        vk = VerifyingKey.from_string(pubkey, curve=SECP256k1)
        return vk.verify_digest(der, digest, sigdecode=util.sigdecode_der)
    except (BadSignatureError, MalformedPointError, UnexpectedDER, ValueError):
        return False


# ═══════════════════════════════════════════════════════════════════════════════
# P2PKH SPENDS
# ═══════════════════════════════════════════════════════════════════════════════

def p2pkh_script_sig(key: SigningKey, tx: Transaction, input_index: int,
                     utxo_script: bytes, value: int,
                     sighash: int = SIGHASH_ALL | SIGHASH_FORKID) -> bytes:
    """Unlocking script <sig> <pubkey> for a P2PKH input."""
    sig = sign_input(key, tx, input_index, utxo_script, value, sighash)
    return push_data(sig) + push_data(public_key_bytes(key))


def check_p2pkh_spend(tx: Transaction, input_index: int, utxo_script: bytes, value: int) -> bool:
    """
    Verify the <sig> <pubkey> unlocking script of a P2PKH input.

    The key must hash to the locked key hash, the signature must carry FORKID
    and verify over this input's preimage.
    """
    if not is_p2pkh(utxo_script):
        return False
    script_sig = tx.inputs[input_index].script_sig
    try:
        op, sig, i = read_push(script_sig, 0)
        op2, pubkey, i = read_push(script_sig, i)
        _, sighash = split_signature(sig or b"")
    except ValueError:
        return False
    if op is not None or op2 is not None or i != len(script_sig):
        return False
    if hash160(pubkey) != utxo_script[3:23] or not sighash & SIGHASH_FORKID:
        return False
    digest = sighash_digest(tx, input_index, utxo_script, value, sighash)
    return check_sig(sig, pubkey, digest)
