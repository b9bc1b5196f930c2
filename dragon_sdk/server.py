"""
Satoshi Dragons SDK - Inspection API

Read-only REST API for game clients.

Endpoints:
  GET  /health                 - Server is up
  GET  /health/node            - Node RPC connectivity
  POST /api/dragon/decode      - Decode a dragon locking script
  POST /api/battle/outcome     - Predict a resolution for a dragon and header
  GET  /api/battle/odds        - Challenger win probability
"""

import logging
import time
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from .config import Config, load_config
from .contract import WEIGHT_PER_POWER, compute_outcome, resolve_state, win_probability
from .dragon_types import BlockHeader, DragonState
from .entropy import block_header_hash_as_int, is_valid_block_header
from .errors import DragonError
from .rpc_client import RPCClient, RPCError
from .script_utils import parse_inscription, pubkey_to_address
from .state_codec import decode_state_tail

log = logging.getLogger(__name__)


def _state_from_request(data: dict) -> DragonState:
    if "script" in data:
        return decode_state_tail(bytes.fromhex(data["script"]))
    if "state" in data:
        state = DragonState.from_dict(data["state"])
        state.validate()
        return state
    raise ValueError("provide 'script' or 'state'")


def create_app(config: Optional[Config] = None, rpc: Optional[RPCClient] = None) -> Flask:
    config = config or load_config()
    rpc = rpc or RPCClient.from_config(config)

    app = Flask(__name__)
    CORS(app)  # Allow cross-origin for game clients

    @app.errorhandler(DragonError)
    def handle_dragon_error(e):
        return jsonify({'error': str(e), 'kind': type(e).__name__}), 400

    @app.errorhandler(ValueError)
    def handle_value_error(e):
        return jsonify({'error': str(e)}), 400

    # =========================================================================
    # HEALTH ENDPOINTS
    # =========================================================================

    @app.route('/health')
    def health():
        """Simple health check - returns ok if server is running"""
        return jsonify({'ok': True, 'timestamp': int(time.time())})

    @app.route('/health/node')
    def health_node():
        """Check node connectivity"""
        try:
            height = rpc.getblockcount()
        except RPCError as e:
            return jsonify({'ok': False, 'error': str(e)}), 503
        return jsonify({'ok': True, 'height': height})

    # =========================================================================
    # API ENDPOINTS
    # =========================================================================

    @app.route('/api/dragon/decode', methods=['POST'])
    def api_decode():
        """
        Decode a dragon locking script.

        Request:
        {
            "script": "0063036f7264..."   # full locking script hex
        }
        """
        data = request.get_json(silent=True)
        if not data or "script" not in data:
            return jsonify({'error': 'No script provided'}), 400

        script = bytes.fromhex(data["script"])
        state = decode_state_tail(script)
        inscription = parse_inscription(script)

        return jsonify({
            'state': state.to_dict(),
            'owner_address': pubkey_to_address(state.owner_pubkey),
            'idle': state.is_idle(),
            'inscription': {
                'content_type': inscription[0],
                'payload': inscription[1].decode(errors='replace'),
            } if inscription else None,
        })

    @app.route('/api/battle/outcome', methods=['POST'])
    def api_outcome():
        """
        Predict the resolution from one dragon's side.

        Request:
        {
            "script": "..." | "state": {...},
            "header": {"raw": "<80-byte hex>"} | {...fields...},
            "rand": 12345                      # instead of header
        }
        """
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'No data provided'}), 400

        state = _state_from_request(data)
        header_valid = None
        if "header" in data:
            header = BlockHeader.from_dict(data["header"])
            rand = block_header_hash_as_int(header)
            header_valid = is_valid_block_header(header, config.target)
        elif "rand" in data:
            rand = int(data["rand"])
        else:
            return jsonify({'error': "provide 'header' or 'rand'"}), 400

        won = compute_outcome(state.power, state.opponent_power, state.is_challenger, rand)
        total = WEIGHT_PER_POWER * (state.power + state.opponent_power)

        log.info(f"Outcome query: power {state.power} vs {state.opponent_power} -> "
                 f"{'won' if won else 'lost'}")
        return jsonify({
            'won': won,
            'pick': rand % total,
            'rand': f"{rand:x}",
            'header_valid': header_valid,
            'next_state': resolve_state(state, won).to_dict(),
        })

    @app.route('/api/battle/odds')
    def api_odds():
        """Challenger win probability for the given powers."""
        power = request.args.get('power', type=int)
        opponent_power = request.args.get('opponent_power', type=int)
        if power is None or opponent_power is None:
            return jsonify({'error': 'power and opponent_power are required'}), 400

        p = win_probability(power, opponent_power)
        return jsonify({
            'power': power,
            'opponent_power': opponent_power,
            'challenger_win': float(p),
            'responder_win': float(1 - p),
            'fraction': f"{p.numerator}/{p.denominator}",
        })

    return app
