"""
Satoshi Dragons SDK - Battle Executor

High-level flows over a Ledger: mint dragons, pair them with a two-party
challenge, and resolve the battle from a block header.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ecdsa import SigningKey

from .contract import CHALLENGE_SIGHASH, DRAGON_SATOSHIS, compute_outcome
from .dragon_types import BattleRole, BlockHeader, DragonState, MerkleNode, Outpoint, Transaction, TxOutput
from .entropy import EntropySource, block_header_hash_as_int
from .errors import LedgerError
from .ledger import ContractCall, Ledger
from .script_utils import push_data
from .signing import p2pkh_script_sig, public_key_bytes, sign_input
from .state_codec import decode_state_tail
from .tx_builder import (
    DEFAULT_CONTRACT_CODE, build_battle_tx, build_challenge_tx, build_dragon_script,
)

log = logging.getLogger(__name__)


@dataclass
class ResolveResult:
    tx: Transaction
    challenger_won: bool
    winner: Outpoint


class BattleExecutor:
    """
    Orchestrates the full battle lifecycle against a ledger.

    Usage:
        executor = BattleExecutor(ledger, EntropySource())

        a = executor.mint(key_a, "Dragon #0")
        b = executor.mint(key_b, "Dragon #1")

        # Both owners sign their own half of one transaction
        challenge_tx = executor.challenge(a, key_a, b, key_b)

        # Anyone can resolve once the challenge is in a block
        result = executor.resolve(challenge_tx.txid, header, proof)
    """

    def __init__(self, ledger: Ledger, entropy: EntropySource,
                 code: bytes = DEFAULT_CONTRACT_CODE):
        """
        Args:
            ledger: UTXO set to submit transactions to
            entropy: header validator used by both dragons
            code: contract body for newly minted dragons
        """
        self.ledger = ledger
        self.entropy = entropy
        self.code = code

    def _utxo(self, outpoint: Outpoint) -> TxOutput:
        utxo = self.ledger.get_utxo(outpoint)
        if utxo is None:
            raise LedgerError(f"missing or spent input {outpoint}")
        return utxo

    def state_of(self, outpoint: Outpoint) -> DragonState:
        return decode_state_tail(self._utxo(outpoint).script)

    def mint(self, owner: SigningKey, name: str = "") -> Outpoint:
        """Mint an idle power-1 dragon for the key's owner."""
        script = build_dragon_script(public_key_bytes(owner), name, self.code)
        tx = self.ledger.mint([TxOutput(DRAGON_SATOSHIS, script)])
        return tx.outpoint(0)

    def challenge(self, challenger: Outpoint, challenger_key: SigningKey,
                  responder: Outpoint, responder_key: SigningKey) -> Transaction:
        """
        Pair two idle dragons in one transaction.

        Each owner signs only their own input and output slot
        (SIGHASH_SINGLE | ANYONECANPAY), so the two halves can be signed
        independently and combined.
        """
        c_utxo = self._utxo(challenger)
        r_utxo = self._utxo(responder)
        tx = build_challenge_tx(challenger, c_utxo.script, responder, r_utxo.script)

        c_sig = sign_input(challenger_key, tx, 0, c_utxo.script, c_utxo.satoshis, CHALLENGE_SIGHASH)
        r_sig = sign_input(responder_key, tx, 1, r_utxo.script, r_utxo.satoshis, CHALLENGE_SIGHASH)
        tx.inputs[0].script_sig = push_data(c_sig)
        tx.inputs[1].script_sig = push_data(r_sig)

        c_state = decode_state_tail(c_utxo.script)
        r_state = decode_state_tail(r_utxo.script)
        calls = {
            0: ContractCall("challenge", {
                "is_challenger": True,
                "opponent_pubkey": r_state.owner_pubkey,
                "opponent_power": r_state.power,
                "sig": c_sig,
            }),
            1: ContractCall("challenge", {
                "is_challenger": False,
                "opponent_pubkey": c_state.owner_pubkey,
                "opponent_power": c_state.power,
                "sig": r_sig,
            }),
        }
        self.ledger.submit(tx, calls)
        log.info(f"Battle challenge accepted: {tx.txid_hex}")
        return tx

    def predict(self, challenge_txid: bytes, header: BlockHeader) -> bool:
        """Would the challenger win with this header?"""
        state = self.state_of(Outpoint(challenge_txid, 0))
        rand = block_header_hash_as_int(header)
        return compute_outcome(state.power, state.opponent_power, True, rand)

    def resolve(self, challenge_txid: bytes, header: BlockHeader,
                proof: Sequence[MerkleNode],
                change_address: Optional[bytes] = None,
                funding: Optional[Outpoint] = None,
                funding_key: Optional[SigningKey] = None) -> ResolveResult:
        """
        Resolve a battle. Both dragons validate the same transaction.

        Args:
            challenge_txid: txid (internal order) of the challenge transaction
            header: block header supplying entropy
            proof: merkle path of the challenge tx in that block
            change_address: 20-byte key hash receiving the funding input's value
            funding: optional extra P2PKH input
            funding_key: key that signs the funding input
        """
        c_utxo = self._utxo(Outpoint(challenge_txid, 0))
        rand = self.entropy.derive(header, proof, challenge_txid)

        f_utxo = None
        change_amount = 0
        if funding is not None:
            if funding_key is None:
                raise LedgerError("funding input needs a signing key")
            f_utxo = self._utxo(funding)
            if change_address is not None:
                change_amount = f_utxo.satoshis

        tx = build_battle_tx(challenge_txid, c_utxo.script, rand,
                             change_address, change_amount, funding)
        if f_utxo is not None:
            tx.inputs[2].script_sig = p2pkh_script_sig(
                funding_key, tx, 2, f_utxo.script, f_utxo.satoshis)
        args = {
            "header": header,
            "proof": list(proof),
            "entropy": self.entropy,
            "change_address": change_address,
            "change_amount": change_amount,
        }
        results = self.ledger.submit(tx, {
            0: ContractCall("battle_exec", args),
            1: ContractCall("battle_exec", args),
        })

        challenger_won = results[0].won
        winner = BattleRole.from_flag(challenger_won)
        log.info(f"Battle executed: {tx.txid_hex} "
                 f"({'challenger' if challenger_won else 'responder'} won)")
        return ResolveResult(tx=tx, challenger_won=challenger_won,
                             winner=tx.outpoint(winner.output_index))

