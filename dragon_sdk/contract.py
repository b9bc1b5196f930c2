"""
Satoshi Dragons SDK - Dragon Contract

Validation logic each dragon runs when it is spent. Both dragons of a pairing
run it independently against the same transaction; neither sees the other's
state object, only the raw bytes of the enclosing transaction.

Methods:
  - challenge:   owner-signed, pairs the dragon with an opponent
  - battle_exec: unsigned, resolves the battle from block-header entropy
"""

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Optional, Sequence

from .config import mask_secret
from .dragon_types import (
    BlockHeader, DragonState, MerkleNode, Outpoint, SENTINEL_PUBKEY,
    Transaction, TxOutput,
)
from .entropy import EntropySource
from .errors import AuthorizationError, InvalidStateError, OutputsMismatchError
from .prevouts import check_battle_prevouts
from .script_utils import build_p2pkh_script, hash256, pubkey_to_hash, strip_inscription
from .signing import (
    SIGHASH_ALL, SIGHASH_ANYONECANPAY, SIGHASH_FORKID, SIGHASH_SINGLE,
    check_sig, committed_outputs, sighash_digest, split_signature,
)
from .state_codec import decode_state_tail, next_state_script, update_state_script_props

log = logging.getLogger(__name__)

DRAGON_SATOSHIS = 1
PAYOUT_SATOSHIS = 1
WEIGHT_PER_POWER = 100

CHALLENGE_SIGHASH = SIGHASH_SINGLE | SIGHASH_ANYONECANPAY | SIGHASH_FORKID
BATTLE_SIGHASH = SIGHASH_ALL | SIGHASH_FORKID

METHOD_SIGHASH = {
    "challenge": CHALLENGE_SIGHASH,
    "battle_exec": BATTLE_SIGHASH,
}


@dataclass
class ScriptContext:
    """
    What a spending dragon can see about the transaction that spends it.
    """
    tx: Transaction
    input_index: int
    utxo_script: bytes
    utxo_value: int
    sighash: int

    @property
    def outpoint(self) -> Outpoint:
        return self.tx.inputs[self.input_index].outpoint

    @property
    def prevouts(self) -> bytes:
        if self.sighash & SIGHASH_ANYONECANPAY:
            return b""
        return self.tx.prevouts()

    @property
    def hash_outputs(self) -> bytes:
        return hash256(committed_outputs(self.tx, self.input_index, self.sighash))

    def digest(self) -> bytes:
        return sighash_digest(self.tx, self.input_index, self.utxo_script,
                              self.utxo_value, self.sighash)


@dataclass
class BattleResult:
    won: bool
    rand: int
    next_state: DragonState
    outputs: List[TxOutput]


# ═══════════════════════════════════════════════════════════════════════════════
# OUTCOME
# ═══════════════════════════════════════════════════════════════════════════════

def compute_outcome(power: int, opponent_power: int, is_challenger: bool, rand: int) -> bool:
    """
    Did the dragon win?

    Both sides evaluate this with the same rand and mirrored powers, and agree:
    the challenger wins iff pick < 100 * challenger power.
    """
    if power < 0 or opponent_power < 0:
        raise ValueError("powers must be non-negative")
    w1 = WEIGHT_PER_POWER * power
    w2 = WEIGHT_PER_POWER * opponent_power
    total = w1 + w2
    if total <= 0:
        raise ValueError("combined power must be positive")
    pick = rand % total
    return pick < w1 if is_challenger else pick >= w2


def win_probability(power: int, opponent_power: int) -> Fraction:
    """Challenger's chance of winning."""
    if power < 0 or opponent_power < 0:
        raise ValueError("powers must be non-negative")
    if power + opponent_power <= 0:
        raise ValueError("combined power must be positive")
    return Fraction(power, power + opponent_power)


def resolve_state(state: DragonState, won: bool) -> DragonState:
    """State after a resolution: winners go idle with +1 power, losers bump opponent_power."""
    if won:
        return state.next(
            power=state.power + 1,
            opponent_power=0,
            is_challenger=False,
            is_battling=False,
            opponent_pubkey=SENTINEL_PUBKEY,
        )
    return state.next(opponent_power=state.opponent_power + 1)


def build_payout_output(pubkey: bytes) -> TxOutput:
    return TxOutput(PAYOUT_SATOSHIS, build_p2pkh_script(pubkey_to_hash(pubkey)))


def build_change_output(change_address: Optional[bytes], change_amount: int) -> Optional[TxOutput]:
    """P2PKH change, or None when there is nothing to return."""
    if change_amount <= 0 or change_address is None:
        return None
    return TxOutput(change_amount, build_p2pkh_script(change_address))


def battle_outputs(state: DragonState, script: bytes, won: bool,
                   change: Optional[TxOutput] = None) -> List[TxOutput]:
    """
    Outputs a resolution must produce, as seen from one dragon.

    Args:
        state: dragon state before the resolution
        script: the dragon's current locking script
        won: outcome for this dragon
        change: trailing change output, if any

    Slot order by (is_challenger, won):
        challenger, won:  own new state,             payout to opponent
        challenger, lost: payout to own owner,       opponent's rebuilt state
        responder,  won:  payout to opponent,        own new state
        responder,  lost: opponent's rebuilt state,  payout to own owner
    """
    next_state = resolve_state(state, won)

    if won:
        own = TxOutput(DRAGON_SATOSHIS, next_state_script(script, next_state))
        payout = build_payout_output(state.opponent_pubkey)
        outputs = [own, payout] if state.is_challenger else [payout, own]
    else:
        # The winner shares this contract code; rebuild its idle output from
        # our own script bytes with the winner's key and power patched in.
        rebuilt = TxOutput(DRAGON_SATOSHIS, update_state_script_props(
            strip_inscription(script),
            next_state.opponent_pubkey,
            SENTINEL_PUBKEY,
            next_state.opponent_power,
            0,
            False,
            False,
        ))
        payout = build_payout_output(state.owner_pubkey)
        outputs = [payout, rebuilt] if state.is_challenger else [rebuilt, payout]

    if change is not None:
        outputs.append(change)
    return outputs


def _check_hash_outputs(ctx: ScriptContext, outputs: Sequence[TxOutput]) -> None:
    expected = hash256(b"".join(out.serialize() for out in outputs))
    actual = ctx.hash_outputs
    if expected != actual:
        raise OutputsMismatchError(expected, actual)


# ═══════════════════════════════════════════════════════════════════════════════
# CONTRACT
# ═══════════════════════════════════════════════════════════════════════════════

class DragonContract:
    """
    One dragon's validator, bound to the locking script being spent.

    Usage:
        contract = DragonContract.from_script(utxo_script)
        next_state = contract.challenge(ctx, True, opp_key, opp_power, sig)
        result = contract.battle_exec(ctx, header, proof, entropy)

    Methods never mutate the bound state; they return the next state and
    raise a DragonError subclass on any rejection.
    """

    def __init__(self, state: DragonState, script: bytes):
        self.state = state
        self.script = script

    @classmethod
    def from_script(cls, script: bytes) -> "DragonContract":
        return cls(decode_state_tail(script), script)

    def build_state_output(self, state: DragonState) -> TxOutput:
        return TxOutput(DRAGON_SATOSHIS, next_state_script(self.script, state))

    def challenge(self, ctx: ScriptContext, is_challenger: bool, opponent_pubkey: bytes,
                  opponent_power: int, sig: bytes) -> DragonState:
        """
        Pair this dragon with an opponent.

        Each owner calls this for their own dragon; the challenger's output must
        sit at slot 0 and the responder's at slot 1 of the same transaction.

        Raises:
            AuthorizationError: bad signature or wrong sighash type
            InvalidStateError: opponent key or power would break the state invariants
            OutputsMismatchError: own output slot does not hold the next state
        """
        _, sighash = split_signature(sig)
        if sighash != CHALLENGE_SIGHASH or not check_sig(sig, self.state.owner_pubkey, ctx.digest()):
            log.warning(f"Challenge rejected: bad signature for owner "
                        f"{mask_secret(self.state.owner_pubkey.hex())}")
            raise AuthorizationError("signature check failed")

        next_state = self.state.next(
            is_challenger=is_challenger,
            opponent_pubkey=opponent_pubkey,
            opponent_power=opponent_power,
            is_battling=True,
        )
        try:
            next_state.validate()
        except ValueError as e:
            log.warning(f"Challenge rejected at input {ctx.input_index}: {e}")
            raise InvalidStateError(str(e)) from e
        _check_hash_outputs(ctx, [self.build_state_output(next_state)])

        log.info(f"Challenge accepted at input {ctx.input_index}: "
                 f"{'challenger' if is_challenger else 'responder'}, "
                 f"opponent power {opponent_power}")
        return next_state

    def check_battle_prevouts(self, ctx: ScriptContext) -> None:
        check_battle_prevouts(self.state.is_challenger, ctx.outpoint, ctx.prevouts)

    def battle_exec(self, ctx: ScriptContext, header: BlockHeader,
                    proof: Sequence[MerkleNode], entropy: EntropySource,
                    change_address: Optional[bytes] = None,
                    change_amount: int = 0) -> BattleResult:
        """
        Resolve the battle. Callable by anyone; no signature.

        Args:
            ctx: spending context for this dragon's input
            header: block header supplying entropy
            proof: merkle path of the challenge tx in that block
            entropy: header validator / integer derivation
            change_address: 20-byte key hash for the trailing change output
            change_amount: satoshis of change (0 means no change output)

        Raises:
            InvalidStateError, PrevoutLinkError, EntropyError, OutputsMismatchError
        """
        if not self.state.is_battling or self.state.opponent_pubkey == SENTINEL_PUBKEY:
            log.warning(f"Battle rejected at input {ctx.input_index}: dragon is not paired")
            raise InvalidStateError("dragon is not in a battle")
        self.check_battle_prevouts(ctx)

        rand = entropy.derive(header, proof, ctx.outpoint.txid)
        won = compute_outcome(self.state.power, self.state.opponent_power,
                              self.state.is_challenger, rand)

        outputs = battle_outputs(self.state, self.script, won,
                                 build_change_output(change_address, change_amount))
        _check_hash_outputs(ctx, outputs)

        next_state = resolve_state(self.state, won)
        log.info(f"Battle resolved at input {ctx.input_index}: "
                 f"{'won' if won else 'lost'} (power {self.state.power} vs "
                 f"{self.state.opponent_power})")
        return BattleResult(won=won, rand=rand, next_state=next_state, outputs=outputs)
