"""
Satoshi Dragons SDK - Ledger

In-memory UTXO set with all-or-nothing transaction commits.

A submitted transaction is validated from the side of every dragon it spends,
each on its own decoded copy of that dragon's state. Only when every check
passes are the spent outputs removed and the new ones added; any failure
leaves the set untouched and the error propagates to the caller.

Inputs that are not dragons must be P2PKH outputs unlocked by <sig> <pubkey>.
A transaction carrying a battle_exec call must spend both paired dragons at
inputs 0 and 1, each with its own battle_exec call.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .contract import METHOD_SIGHASH, DragonContract, ScriptContext
from .dragon_types import Outpoint, Transaction, TxOutput
from .errors import LedgerError
from .signing import check_p2pkh_spend
from .state_codec import is_state_script
from .tx_builder import COINBASE_INDEX, NULL_TXID, build_mint_tx

log = logging.getLogger(__name__)


@dataclass
class ContractCall:
    """Unlocking call for one dragon input: method name plus its arguments."""
    method: str
    args: Dict[str, Any] = field(default_factory=dict)

    @property
    def sighash(self) -> int:
        try:
            return METHOD_SIGHASH[self.method]
        except KeyError:
            raise LedgerError(f"unknown contract method: {self.method}")


class Ledger:
    """
    Usage:
        ledger = Ledger()
        mint_tx = ledger.mint([TxOutput(1, script)])
        ledger.submit(tx, {0: ContractCall("challenge", {...}), 1: ...})
    """

    def __init__(self):
        self.utxos: Dict[Outpoint, TxOutput] = {}
        self.transactions: Dict[bytes, Transaction] = {}
        self.height = 0

    def get_utxo(self, outpoint: Outpoint) -> Optional[TxOutput]:
        return self.utxos.get(outpoint)

    def get_transaction(self, txid: bytes) -> Optional[Transaction]:
        return self.transactions.get(txid)

    def mint(self, outputs: List[TxOutput]) -> Transaction:
        """Create outputs from nothing (minting and funding in simulations)."""
        self.height += 1
        tx = build_mint_tx(outputs, self.height)
        self._commit(tx)
        log.info(f"Minted {len(outputs)} output(s) in {tx.txid_hex[:16]}...")
        return tx

    def validate(self, tx: Transaction, calls: Dict[int, ContractCall]) -> List[Any]:
        """
        Run every dragon input's validator without committing.

        Returns:
            per-call results, in input order

        Raises:
            LedgerError: missing or already spent inputs, value overspend,
                unsigned non-dragon inputs, a battle missing one of its dragons
            DragonError: any contract rejection
        """
        if not tx.inputs:
            raise LedgerError("transaction has no inputs")

        seen = set()
        spent_value = 0
        for txin in tx.inputs:
            if txin.outpoint.txid == NULL_TXID and txin.outpoint.index == COINBASE_INDEX:
                raise LedgerError("coinbase inputs are not accepted")
            if txin.outpoint in seen:
                raise LedgerError(f"duplicate input {txin.outpoint}")
            seen.add(txin.outpoint)
            utxo = self.utxos.get(txin.outpoint)
            if utxo is None:
                raise LedgerError(f"missing or spent input {txin.outpoint}")
            spent_value += utxo.satoshis

        created_value = sum(out.satoshis for out in tx.outputs)
        if created_value > spent_value:
            raise LedgerError(f"outputs ({created_value}) exceed inputs ({spent_value})")

        self._check_battle_pair(tx, calls)

        results = []
        for i, txin in enumerate(tx.inputs):
            utxo = self.utxos[txin.outpoint]
            if not is_state_script(utxo.script):
                if not check_p2pkh_spend(tx, i, utxo.script, utxo.satoshis):
                    raise LedgerError(f"input {i} spends {txin.outpoint} without authorization")
                continue
            call = calls.get(i)
            if call is None:
                raise LedgerError(f"input {i} spends a dragon without a contract call")
            ctx = ScriptContext(
                tx=tx,
                input_index=i,
                utxo_script=utxo.script,
                utxo_value=utxo.satoshis,
                sighash=call.sighash,
            )
            contract = DragonContract.from_script(utxo.script)
            method = getattr(contract, call.method)
            results.append(method(ctx, **call.args))
        return results

    def _check_battle_pair(self, tx: Transaction, calls: Dict[int, ContractCall]) -> None:
        """A resolution must spend both paired dragons, at inputs 0 and 1."""
        if not any(call.method == "battle_exec" for call in calls.values()):
            return
        if len(tx.inputs) < 2:
            raise LedgerError("battle needs two dragon inputs")
        for i in (0, 1):
            call = calls.get(i)
            utxo = self.utxos[tx.inputs[i].outpoint]
            if call is None or call.method != "battle_exec" or not is_state_script(utxo.script):
                raise LedgerError(f"battle input {i} is not a dragon resolved in this transaction")

    def submit(self, tx: Transaction, calls: Dict[int, ContractCall]) -> List[Any]:
        """Validate from every side, then commit. Nothing changes on failure."""
        try:
            results = self.validate(tx, calls)
        except Exception as e:
            log.warning(f"Transaction {tx.txid_hex[:16]}... rejected: {e}")
            raise
        self._commit(tx)
        log.info(f"Committed {tx.txid_hex[:16]}... "
                 f"({len(tx.inputs)} in / {len(tx.outputs)} out)")
        return results

    def _commit(self, tx: Transaction) -> None:
        txid = tx.txid
        for txin in tx.inputs:
            self.utxos.pop(txin.outpoint, None)
        for i, txout in enumerate(tx.outputs):
            self.utxos[Outpoint(txid, i)] = txout
        self.transactions[txid] = tx
