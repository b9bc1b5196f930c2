"""
Satoshi Dragons SDK - RPC Client

JSON-RPC client for the node that supplies block headers and relays
transactions.
"""

import logging
import requests
from typing import Any, List, Optional

from .dragon_types import BlockHeader, Transaction

log = logging.getLogger(__name__)


class RPCError(Exception):
    """RPC call failed."""
    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"RPC Error {code}: {message}")


class RPCClient:
    """
    JSON-RPC client for a Bitcoin-family node.

    Usage:
        rpc = RPCClient("localhost", 18332, "user", "pass")
        height = rpc.getblockcount()
        header = rpc.fetch_block_header(rpc.getbestblockhash())
    """

    def __init__(self, host: str = "localhost", port: int = 18332,
                 user: str = "dragons", password: str = "",
                 timeout: int = 30):
        self.url = f"http://{host}:{port}"
        self.auth = (user, password)
        self.timeout = timeout
        self._id = 0

    @classmethod
    def from_config(cls, config) -> "RPCClient":
        return cls(config.rpc_host, config.rpc_port, config.rpc_user,
                   config.rpc_password, config.rpc_timeout)

    def _call(self, method: str, params: Optional[list] = None) -> Any:
        """Make RPC call."""
        self._id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._id,
            "method": method,
            "params": params or []
        }

        try:
            response = requests.post(
                self.url,
                json=payload,
                auth=self.auth,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            log.error(f"RPC {method} failed: {e}")
            raise RPCError(-1, f"Connection failed: {e}")

        result = response.json()

        if "error" in result and result["error"]:
            raise RPCError(result["error"]["code"], result["error"]["message"])

        return result.get("result")

    def __getattr__(self, name: str):
        """Allow calling RPC methods as attributes."""
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args):
            return self._call(name, list(args))
        return method

    # ═══════════════════════════════════════════════════════════════════════
    # CHAIN RPC METHODS (typed for IDE support)
    # ═══════════════════════════════════════════════════════════════════════

    def getblockcount(self) -> int:
        """Get current block height."""
        return self._call("getblockcount")

    def getbestblockhash(self) -> str:
        """Get tip block hash (display hex)."""
        return self._call("getbestblockhash")

    def getblockhash(self, height: int) -> str:
        return self._call("getblockhash", [height])

    def getblockheader(self, block_hash: str, verbose: bool = False) -> Any:
        """Raw header hex when verbose is False, decoded dict otherwise."""
        return self._call("getblockheader", [block_hash, verbose])

    def getrawtransaction(self, txid: str, verbose: bool = False) -> Any:
        return self._call("getrawtransaction", [txid, 1 if verbose else 0])

    def sendrawtransaction(self, tx_hex: str) -> str:
        """Broadcast a transaction; returns its txid."""
        return self._call("sendrawtransaction", [tx_hex])

    def gettxoutproof(self, txids: List[str], block_hash: str = "") -> str:
        params = [txids, block_hash] if block_hash else [txids]
        return self._call("gettxoutproof", params)

    # ═══════════════════════════════════════════════════════════════════════
    # DECODED HELPERS
    # ═══════════════════════════════════════════════════════════════════════

    def fetch_block_header(self, block_hash: str) -> BlockHeader:
        """Fetch and parse an 80-byte block header."""
        raw = self.getblockheader(block_hash, False)
        header = BlockHeader.parse(bytes.fromhex(raw))
        if header.hash()[::-1].hex() != block_hash.lower():
            raise RPCError(-1, f"node returned header that does not hash to {block_hash}")
        return header

    def fetch_transaction(self, txid: str) -> Transaction:
        tx = Transaction.parse(bytes.fromhex(self.getrawtransaction(txid)))
        if tx.txid_hex != txid.lower():
            raise RPCError(-1, f"node returned transaction that does not hash to {txid}")
        return tx

    def broadcast(self, tx: Transaction) -> str:
        txid = self.sendrawtransaction(tx.hex())
        log.info(f"Broadcast {txid}")
        return txid

    def test_connection(self) -> bool:
        """Test if RPC connection works."""
        try:
            self.getblockcount()
            return True
        except RPCError:
            return False
