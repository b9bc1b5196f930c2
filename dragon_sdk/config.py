"""
Satoshi Dragons SDK - Configuration

Defaults are overridden by DRAGONS_* environment variables, and those in turn
by command line flags.
"""

import os
from dataclasses import dataclass

from .entropy import MAX_TARGET


@dataclass
class Config:
    # Node RPC
    rpc_host: str = "127.0.0.1"
    rpc_port: int = 18332
    rpc_user: str = "dragons"
    rpc_password: str = ""
    rpc_timeout: int = 30

    # Entropy checks (header difficulty + merkle inclusion)
    validate_entropy: bool = True
    target: int = MAX_TARGET

    # Inspection API
    http_host: str = "127.0.0.1"
    http_port: int = 8080

    log_level: str = "INFO"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


def load_config() -> Config:
    """Build a Config from the environment."""
    defaults = Config()
    target_raw = os.getenv("DRAGONS_TARGET")
    return Config(
        rpc_host=os.getenv("DRAGONS_RPC_HOST", defaults.rpc_host),
        rpc_port=int(os.getenv("DRAGONS_RPC_PORT", str(defaults.rpc_port))),
        rpc_user=os.getenv("DRAGONS_RPC_USER", defaults.rpc_user),
        rpc_password=os.getenv("DRAGONS_RPC_PASSWORD", defaults.rpc_password),
        rpc_timeout=int(os.getenv("DRAGONS_RPC_TIMEOUT", str(defaults.rpc_timeout))),
        validate_entropy=_env_bool("DRAGONS_VALIDATE_ENTROPY", defaults.validate_entropy),
        target=int(target_raw, 16) if target_raw else defaults.target,
        http_host=os.getenv("DRAGONS_HTTP_HOST", defaults.http_host),
        http_port=int(os.getenv("DRAGONS_HTTP_PORT", str(defaults.http_port))),
        log_level=os.getenv("DRAGONS_LOG_LEVEL", defaults.log_level).upper(),
    )


# =============================================================================
# LOGGING HELPERS
# =============================================================================

def mask_secret(secret: str, visible_prefix: int = 8, visible_suffix: int = 4) -> str:
    """Mask a key or signature for logging."""
    if not secret or len(secret) <= visible_prefix + visible_suffix:
        return "***"
    return f"{secret[:visible_prefix]}...{secret[-visible_suffix:]}"
