"""
Satoshi Dragons SDK - Data Types

Dragon token state plus the minimal transaction and block header structures
the protocol validates against.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List
import json

from .script_utils import encode_varint, hash256, read_varint, serialize_output

PUBKEY_LEN = 33

# Opponent key of a dragon that is not in a battle
SENTINEL_PUBKEY = b"\x00" * PUBKEY_LEN


class BattleRole(Enum):
    """Role in a pairing; the value is the dragon's output slot in the challenge tx."""
    CHALLENGER = 0
    RESPONDER = 1

    @property
    def output_index(self) -> int:
        return self.value

    @classmethod
    def from_flag(cls, is_challenger: bool) -> "BattleRole":
        return cls.CHALLENGER if is_challenger else cls.RESPONDER


@dataclass
class DragonState:
    """
    Dragon token state, persisted in the tail of its locking script.

    Structure:
      - owner_pubkey: controlling compressed public key (33 bytes)
      - power: accumulated strength, grows by one per won battle
      - opponent_pubkey: paired opponent's key, SENTINEL_PUBKEY when idle
      - opponent_power: opponent's power recorded at challenge time; after a
        lost resolution it is bumped by one and doubles as a loss tally
      - is_challenger: True if this dragon initiated the pairing
      - is_battling: True while a pairing is active
    """
    owner_pubkey: bytes
    power: int = 1
    opponent_pubkey: bytes = SENTINEL_PUBKEY
    opponent_power: int = 0
    is_challenger: bool = False
    is_battling: bool = False

    @property
    def role(self) -> BattleRole:
        return BattleRole.from_flag(self.is_challenger)

    def is_idle(self) -> bool:
        return not self.is_battling and self.opponent_pubkey == SENTINEL_PUBKEY

    def validate(self) -> None:
        """Check the lifecycle invariants; raises ValueError."""
        if len(self.owner_pubkey) != PUBKEY_LEN:
            raise ValueError(f"owner key must be {PUBKEY_LEN} bytes")
        if len(self.opponent_pubkey) != PUBKEY_LEN:
            raise ValueError(f"opponent key must be {PUBKEY_LEN} bytes")
        if self.power < 1:
            raise ValueError(f"power must be >= 1, got {self.power}")
        if self.opponent_power < 0:
            raise ValueError(f"opponent power must be >= 0, got {self.opponent_power}")
        if self.is_battling and self.opponent_pubkey == SENTINEL_PUBKEY:
            raise ValueError("battling dragon has no opponent")

    def next(self, **changes) -> "DragonState":
        """Copy with the given fields changed."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "owner_pubkey": self.owner_pubkey.hex(),
            "power": self.power,
            "opponent_pubkey": self.opponent_pubkey.hex(),
            "opponent_power": self.opponent_power,
            "is_challenger": self.is_challenger,
            "is_battling": self.is_battling,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DragonState":
        """Create DragonState from dictionary."""
        return cls(
            owner_pubkey=bytes.fromhex(data["owner_pubkey"]),
            power=int(data.get("power", 1)),
            opponent_pubkey=bytes.fromhex(data.get("opponent_pubkey", SENTINEL_PUBKEY.hex())),
            opponent_power=int(data.get("opponent_power", 0)),
            is_challenger=bool(data.get("is_challenger", False)),
            is_battling=bool(data.get("is_battling", False)),
        )

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "DragonState":
        """Create DragonState from JSON string."""
        return cls.from_dict(json.loads(json_str))


# ═══════════════════════════════════════════════════════════════════════════════
# TRANSACTIONS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Outpoint:
    """Reference to a transaction output; txid is kept in internal byte order."""
    txid: bytes
    index: int

    def serialize(self) -> bytes:
        return self.txid + self.index.to_bytes(4, 'little')

    @classmethod
    def parse(cls, data: bytes) -> "Outpoint":
        if len(data) != 36:
            raise ValueError(f"outpoint must be 36 bytes, got {len(data)}")
        return cls(txid=data[:32], index=int.from_bytes(data[32:], 'little'))

    @property
    def txid_hex(self) -> str:
        """Display form (byte-reversed)."""
        return self.txid[::-1].hex()

    @classmethod
    def from_string(cls, text: str) -> "Outpoint":
        """Parse "txid:vout" with the txid in display order."""
        txid_hex, _, index = text.rpartition(":")
        if not txid_hex:
            raise ValueError(f"invalid outpoint: {text}")
        return cls(txid=bytes.fromhex(txid_hex)[::-1], index=int(index))

    def __str__(self) -> str:
        return f"{self.txid_hex}:{self.index}"


@dataclass(frozen=True)
class TxOutput:
    satoshis: int
    script: bytes

    def serialize(self) -> bytes:
        return serialize_output(self.satoshis, self.script)


@dataclass
class TxInput:
    outpoint: Outpoint
    script_sig: bytes = b""
    sequence: int = 0xffffffff

    def serialize(self) -> bytes:
        return (self.outpoint.serialize() + encode_varint(len(self.script_sig)) +
                self.script_sig + self.sequence.to_bytes(4, 'little'))


@dataclass
class Transaction:
    inputs: List[TxInput] = field(default_factory=list)
    outputs: List[TxOutput] = field(default_factory=list)
    version: int = 1
    locktime: int = 0

    def serialize(self) -> bytes:
        res = self.version.to_bytes(4, 'little')
        res += encode_varint(len(self.inputs))
        for txin in self.inputs:
            res += txin.serialize()
        res += encode_varint(len(self.outputs))
        for txout in self.outputs:
            res += txout.serialize()
        res += self.locktime.to_bytes(4, 'little')
        return res

    @property
    def txid(self) -> bytes:
        """Transaction id in internal byte order."""
        return hash256(self.serialize())

    @property
    def txid_hex(self) -> str:
        return self.txid[::-1].hex()

    def prevouts(self) -> bytes:
        """Concatenated outpoints of every input, in input order."""
        return b"".join(txin.outpoint.serialize() for txin in self.inputs)

    def outpoint(self, index: int) -> Outpoint:
        if not 0 <= index < len(self.outputs):
            raise IndexError(f"tx {self.txid_hex[:16]}... has no output {index}")
        return Outpoint(self.txid, index)

    def hex(self) -> str:
        return self.serialize().hex()

    @classmethod
    def parse(cls, data: bytes) -> "Transaction":
        """Decode a legacy (non-segwit) serialized transaction."""
        version = int.from_bytes(data[0:4], 'little')
        count, i = read_varint(data, 4)
        inputs = []
        for _ in range(count):
            outpoint = Outpoint.parse(data[i:i + 36])
            script_len, i = read_varint(data, i + 36)
            script_sig = data[i:i + script_len]
            i += script_len
            sequence = int.from_bytes(data[i:i + 4], 'little')
            i += 4
            inputs.append(TxInput(outpoint, script_sig, sequence))
        count, i = read_varint(data, i)
        outputs = []
        for _ in range(count):
            satoshis = int.from_bytes(data[i:i + 8], 'little')
            script_len, i = read_varint(data, i + 8)
            outputs.append(TxOutput(satoshis, data[i:i + script_len]))
            i += script_len
        if len(data) != i + 4:
            raise ValueError("trailing or missing bytes after outputs")
        locktime = int.from_bytes(data[i:i + 4], 'little')
        return cls(inputs=inputs, outputs=outputs, version=version, locktime=locktime)


# ═══════════════════════════════════════════════════════════════════════════════
# BLOCK HEADERS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BlockHeader:
    """
    80-byte block header. Hashes are kept in internal byte order.
    """
    version: int
    prev_block_hash: bytes
    merkle_root: bytes
    time: int
    bits: int
    nonce: int

    def serialize(self) -> bytes:
        return (
            self.version.to_bytes(4, 'little') +
            self.prev_block_hash +
            self.merkle_root +
            self.time.to_bytes(4, 'little') +
            self.bits.to_bytes(4, 'little') +
            self.nonce.to_bytes(4, 'little')
        )

    @classmethod
    def parse(cls, data: bytes) -> "BlockHeader":
        if len(data) != 80:
            raise ValueError(f"block header must be 80 bytes, got {len(data)}")
        return cls(
            version=int.from_bytes(data[0:4], 'little'),
            prev_block_hash=data[4:36],
            merkle_root=data[36:68],
            time=int.from_bytes(data[68:72], 'little'),
            bits=int.from_bytes(data[72:76], 'little'),
            nonce=int.from_bytes(data[76:80], 'little'),
        )

    def hash(self) -> bytes:
        return hash256(self.serialize())

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "prev_block_hash": self.prev_block_hash[::-1].hex(),
            "merkle_root": self.merkle_root[::-1].hex(),
            "time": self.time,
            "bits": f"{self.bits:08x}",
            "nonce": self.nonce,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BlockHeader":
        """Accepts either a "raw" 80-byte hex header or the individual fields."""
        if "raw" in data:
            return cls.parse(bytes.fromhex(data["raw"]))
        bits = data["bits"]
        return cls(
            version=int(data["version"]),
            prev_block_hash=bytes.fromhex(data["prev_block_hash"])[::-1],
            merkle_root=bytes.fromhex(data["merkle_root"])[::-1],
            time=int(data["time"]),
            bits=int(bits, 16) if isinstance(bits, str) else int(bits),
            nonce=int(data["nonce"]),
        )


@dataclass(frozen=True)
class MerkleNode:
    """One step of a merkle path; pos is one of entropy.LEFT_NODE/RIGHT_NODE/INVALID_NODE."""
    hash: bytes
    pos: int


def blank_merkle_proof(depth: int = 32) -> List[MerkleNode]:
    """Proof for a block whose only transaction is the leaf itself."""
    return [MerkleNode(hash=b"\x00" * 32, pos=0) for _ in range(depth)]

