"""
Satoshi Dragons command line

Usage:
    # Decode a dragon locking script
    dragons decode <script-hex>

    # Outcome for a challenger of power 5 against power 5
    dragons outcome --power 5 --opponent-power 5 --rand 400

    # Outcome from a node's block header
    dragons outcome --power 5 --opponent-power 3 --block <hash>

    # Win odds
    dragons odds --power 3 --opponent-power 1

    # Inspection API
    dragons serve --port 8080
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import load_config
from .contract import compute_outcome, resolve_state, win_probability
from .dragon_types import DragonState
from .entropy import block_header_hash_as_int, is_valid_block_header
from .errors import DragonError
from .rpc_client import RPCClient, RPCError
from .script_utils import parse_inscription, pubkey_to_address
from .state_codec import decode_state_tail

log = logging.getLogger(__name__)

# Placeholder keys for outcome queries that only need powers
_ANON_OWNER = b"\x02" + b"\x11" * 32
_ANON_OPPONENT = b"\x03" + b"\x22" * 32


def cmd_decode(args, config) -> int:
    script = bytes.fromhex(args.script)
    state = decode_state_tail(script)
    out = {
        "state": state.to_dict(),
        "owner_address": pubkey_to_address(state.owner_pubkey),
        "idle": state.is_idle(),
    }
    inscription = parse_inscription(script)
    if inscription:
        out["inscription"] = {"content_type": inscription[0],
                              "payload": inscription[1].decode(errors="replace")}
    print(json.dumps(out, indent=2))
    return 0


def cmd_outcome(args, config) -> int:
    if args.block:
        rpc = RPCClient.from_config(config)
        header = rpc.fetch_block_header(args.block)
        if config.validate_entropy and not is_valid_block_header(header, config.target):
            print("Error: block header does not meet its target", file=sys.stderr)
            return 1
        rand = block_header_hash_as_int(header)
    elif args.rand is not None:
        rand = int(args.rand, 0)
    else:
        print("Error: --rand or --block required", file=sys.stderr)
        return 1

    is_challenger = not args.responder
    state = DragonState(
        owner_pubkey=_ANON_OWNER,
        power=args.power,
        opponent_pubkey=_ANON_OPPONENT,
        opponent_power=args.opponent_power,
        is_challenger=is_challenger,
        is_battling=True,
    )
    won = compute_outcome(state.power, state.opponent_power, is_challenger, rand)
    next_state = resolve_state(state, won)

    print(f"Role:      {'challenger' if is_challenger else 'responder'}")
    print(f"Pick:      {rand % (100 * (state.power + state.opponent_power))}")
    print(f"Result:    {'WON' if won else 'LOST'}")
    print(f"Power:     {state.power} -> {next_state.power}")
    print(f"Opp power: {state.opponent_power} -> {next_state.opponent_power}")
    return 0


def cmd_odds(args, config) -> int:
    p = win_probability(args.power, args.opponent_power)
    print(f"Challenger ({args.power}) vs responder ({args.opponent_power})")
    print(f"  challenger wins: {float(p):.4f} ({p.numerator}/{p.denominator})")
    print(f"  responder wins:  {float(1 - p):.4f}")
    return 0


def cmd_serve(args, config) -> int:
    from .server import create_app

    app = create_app(config)
    log.info(f"Inspection API on {config.http_host}:{config.http_port}")
    app.run(host=config.http_host, port=config.http_port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dragons", description="Satoshi Dragons battle tools")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--rpc-host", help="Node RPC host")
    parser.add_argument("--rpc-port", type=int, help="Node RPC port")
    parser.add_argument("--no-validate-entropy", action="store_true",
                        help="Skip block header difficulty checks")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    decode_parser = subparsers.add_parser("decode", help="Decode a dragon locking script")
    decode_parser.add_argument("script", help="Locking script hex")

    outcome_parser = subparsers.add_parser("outcome", help="Battle outcome for given powers")
    outcome_parser.add_argument("--power", type=int, required=True, help="This dragon's power")
    outcome_parser.add_argument("--opponent-power", type=int, required=True, help="Recorded opponent power")
    outcome_parser.add_argument("--responder", action="store_true", help="Evaluate as the responder")
    outcome_parser.add_argument("--rand", help="Entropy integer (decimal or 0x-hex)")
    outcome_parser.add_argument("--block", help="Block hash to fetch the header from the node")

    odds_parser = subparsers.add_parser("odds", help="Challenger win probability")
    odds_parser.add_argument("--power", type=int, required=True, help="Challenger power")
    odds_parser.add_argument("--opponent-power", type=int, required=True, help="Responder power")

    serve_parser = subparsers.add_parser("serve", help="Run the inspection API")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="HTTP port")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config()
    if args.log_level:
        config.log_level = args.log_level
    if args.rpc_host:
        config.rpc_host = args.rpc_host
    if args.rpc_port:
        config.rpc_port = args.rpc_port
    if args.no_validate_entropy:
        config.validate_entropy = False
    if getattr(args, "host", None):
        config.http_host = args.host
    if getattr(args, "port", None):
        config.http_port = args.port

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    commands = {
        "decode": cmd_decode,
        "outcome": cmd_outcome,
        "odds": cmd_odds,
        "serve": cmd_serve,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args, config)
    except (DragonError, RPCError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
