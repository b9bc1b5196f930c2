"""
Satoshi Dragons SDK - Script Utilities

Hashing, varints, push-data, P2PKH scripts and ordinal inscription envelopes.
Everything here works on raw bytes and knows nothing about dragon state.
"""

import hashlib
from typing import List, Optional, Tuple

# ═══════════════════════════════════════════════════════════════════════════════
# OPCODES
# ═══════════════════════════════════════════════════════════════════════════════

OP_0 = 0x00
OP_FALSE = OP_0
OP_PUSHDATA1 = 0x4c
OP_PUSHDATA2 = 0x4d
OP_PUSHDATA4 = 0x4e
OP_1 = 0x51
OP_IF = 0x63
OP_ENDIF = 0x68
OP_RETURN = 0x6a
OP_DROP = 0x75
OP_DUP = 0x76
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xa9
OP_CHECKSIG = 0xac

_PUSHDATA_WIDTH = {OP_PUSHDATA1: 1, OP_PUSHDATA2: 2, OP_PUSHDATA4: 4}

ORD_MARKER = b"ord"

_BASE58_ALPHABET = '123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz'
TESTNET_PUBKEY_VERSION = 0x6f
MAINNET_PUBKEY_VERSION = 0x00


# ═══════════════════════════════════════════════════════════════════════════════
# HASHING
# ═══════════════════════════════════════════════════════════════════════════════

def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hash256(data: bytes) -> bytes:
    """Double SHA256, the digest used for txids, headers and hashOutputs."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data)), the P2PKH key hash."""
    return hashlib.new('ripemd160', sha256(data)).digest()


# ═══════════════════════════════════════════════════════════════════════════════
# VARINT / PUSH-DATA
# ═══════════════════════════════════════════════════════════════════════════════

def encode_varint(n: int) -> bytes:
    """Encode an integer as a Bitcoin varint."""
    if n < 0:
        raise ValueError(f"varint must be non-negative, got {n}")
    if n < 0xfd:
        return bytes([n])
    elif n <= 0xffff:
        return b'\xfd' + n.to_bytes(2, 'little')
    elif n <= 0xffffffff:
        return b'\xfe' + n.to_bytes(4, 'little')
    else:
        return b'\xff' + n.to_bytes(8, 'little')


def read_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Decode a Bitcoin varint.

    Returns:
        (value, offset just past the varint)
    """
    if offset >= len(data):
        raise ValueError("varint truncated")
    first = data[offset]
    if first < 0xfd:
        return first, offset + 1
    width = {0xfd: 2, 0xfe: 4, 0xff: 8}[first]
    end = offset + 1 + width
    if end > len(data):
        raise ValueError("varint truncated")
    return int.from_bytes(data[offset + 1:end], 'little'), end


def push_data(data: bytes) -> bytes:
    """Minimal push opcode for a data element."""
    n = len(data)
    if n <= 0x4b:
        return bytes([n]) + data
    if n <= 0xff:
        return bytes([OP_PUSHDATA1, n]) + data
    if n <= 0xffff:
        return bytes([OP_PUSHDATA2]) + n.to_bytes(2, 'little') + data
    return bytes([OP_PUSHDATA4]) + n.to_bytes(4, 'little') + data


def read_push(script: bytes, i: int) -> Tuple[Optional[int], Optional[bytes], int]:
    """
    Read one script element at offset i.

    Returns:
        (opcode, data, next offset). For pushes opcode is None and data holds
        the pushed bytes; for other opcodes data is None.
    """
    if i >= len(script):
        raise ValueError("script truncated")
    op = script[i]
    i += 1
    if op <= 0x4b:
        width = 0
    elif op in _PUSHDATA_WIDTH:
        width = _PUSHDATA_WIDTH[op]
    else:
        return op, None, i
    if i + width > len(script):
        raise ValueError("push length truncated")
    ln = int.from_bytes(script[i:i + width], 'little') if width else op
    i += width
    if i + ln > len(script):
        raise ValueError("push exceeds script length")
    return None, script[i:i + ln], i + ln


# ═══════════════════════════════════════════════════════════════════════════════
# OUTPUTS / ADDRESSES
# ═══════════════════════════════════════════════════════════════════════════════

def serialize_output(satoshis: int, script: bytes) -> bytes:
    """8-byte LE value, varint script length, script."""
    return satoshis.to_bytes(8, 'little') + encode_varint(len(script)) + script


def build_p2pkh_script(pubkey_hash: bytes) -> bytes:
    if len(pubkey_hash) != 20:
        raise ValueError(f"pubkey hash must be 20 bytes, got {len(pubkey_hash)}")
    return (bytes([OP_DUP, OP_HASH160, 0x14]) + pubkey_hash +
            bytes([OP_EQUALVERIFY, OP_CHECKSIG]))


def is_p2pkh(script: bytes) -> bool:
    return (
        len(script) == 25 and
        script[0] == OP_DUP and script[1] == OP_HASH160 and
        script[2] == 0x14 and
        script[23] == OP_EQUALVERIFY and script[24] == OP_CHECKSIG
    )


def pubkey_to_hash(pubkey: bytes) -> bytes:
    """Address hash for a compressed public key."""
    return hash160(pubkey)


def _base58_encode(data: bytes) -> str:
    """Base58 encode raw bytes."""
    n = int.from_bytes(data, 'big')
    result = ''
    while n > 0:
        n, r = divmod(n, 58)
        result = _BASE58_ALPHABET[r] + result
    for byte in data:
        if byte == 0:
            result = _BASE58_ALPHABET[0] + result
        else:
            break
    return result


def _base58_decode(text: str) -> bytes:
    n = 0
    for char in text:
        idx = _BASE58_ALPHABET.find(char)
        if idx < 0:
            raise ValueError(f"invalid base58 character: {char!r}")
        n = n * 58 + idx
    body = n.to_bytes((n.bit_length() + 7) // 8, 'big') if n else b''
    pad = len(text) - len(text.lstrip(_BASE58_ALPHABET[0]))
    return b'\x00' * pad + body


def pubkey_to_address(pubkey: bytes, version: int = TESTNET_PUBKEY_VERSION) -> str:
    """
    Derive a P2PKH address from a compressed secp256k1 public key.

    Standard Bitcoin derivation: base58check(version || RIPEMD160(SHA256(pubkey)))
    """
    if len(pubkey) != 33:
        raise ValueError(f"expected 33-byte compressed key, got {len(pubkey)}")
    versioned = bytes([version]) + hash160(pubkey)
    checksum = hash256(versioned)[:4]
    return _base58_encode(versioned + checksum)


def address_to_hash(address: str) -> bytes:
    """Decode a base58check P2PKH address to its 20-byte key hash."""
    raw = _base58_decode(address)
    if len(raw) != 25:
        raise ValueError(f"invalid address length: {address}")
    versioned, checksum = raw[:-4], raw[-4:]
    if hash256(versioned)[:4] != checksum:
        raise ValueError(f"bad address checksum: {address}")
    return versioned[1:]


# ═══════════════════════════════════════════════════════════════════════════════
# INSCRIPTION ENVELOPE
# ═══════════════════════════════════════════════════════════════════════════════

def build_inscription(payload: bytes, content_type: str = "text/plain;charset=utf-8") -> bytes:
    """
    Ordinal envelope: OP_FALSE OP_IF "ord" OP_1 <content type> OP_0 <payload> OP_ENDIF

    Prepended to a locking script at mint time.
    """
    return (
        bytes([OP_FALSE, OP_IF]) +
        push_data(ORD_MARKER) +
        bytes([OP_1]) +
        push_data(content_type.encode()) +
        bytes([OP_0]) +
        push_data(payload) +
        bytes([OP_ENDIF])
    )


def _envelope_end(script: bytes) -> Optional[int]:
    """Offset just past a leading envelope, or None when there is none."""
    if len(script) < 2 or script[0] != OP_FALSE or script[1] != OP_IF:
        return None
    op, data, i = read_push(script, 2)
    if op is not None or data != ORD_MARKER:
        return None
    while i < len(script):
        op, data, i = read_push(script, i)
        if op == OP_ENDIF:
            return i
    raise ValueError("inscription envelope is not terminated")


def strip_inscription(script: bytes) -> bytes:
    """Drop a leading inscription envelope; scripts without one pass through."""
    end = _envelope_end(script)
    if end is None:
        return script
    return script[end:]


def parse_inscription(script: bytes) -> Optional[Tuple[str, bytes]]:
    """
    Extract (content type, payload) from a leading envelope.

    Returns:
        None if the script carries no inscription

    Raises:
        ValueError: envelope is present but lacks the content type fields
    """
    end = _envelope_end(script)
    if end is None:
        return None
    elements: List[Tuple[Optional[int], Optional[bytes]]] = []
    i = 2
    while i < end:
        op, data, i = read_push(script, i)
        elements.append((op, data))
    # ord, OP_1, content type, OP_0, payload..., OP_ENDIF
    if len(elements) < 5 or elements[1][0] != OP_1 or elements[2][1] is None:
        raise ValueError("malformed inscription envelope")
    content_type = elements[2][1]
    payload = b"".join(data for _, data in elements[4:-1] if data is not None)
    return content_type.decode(errors="replace"), payload
