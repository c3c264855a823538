"""
Runtime configuration for the inscription miner.

Environment variables (PRIVATE_KEY and ACCOUNT are required):

  PRIVATE_KEY=0x...            signing key of the account
  ACCOUNT=0x...                account contract address
  STARKNET_RPC_URL=https://... JSON-RPC endpoint
  INS_CONTRACT=0x...           inscription contract address
  INS_BITWORK_ID=int           prefix slot read via get_prefix (default: 1)
  INS_DATA=text                inscription payload
  INS_START_FEE=int            base max_fee (default: 6000000000000)
  INS_FEE_STRIDE=int           distance between worker start fees (default: 65536)
  INS_WORKER_COUNT=int         search threads (default: 3)

Values may be seeded from a `.env` file; CLI flags override both.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .job import DEFAULT_FEE_STRIDE, DEFAULT_START_FEE
from .mining.calls import DEFAULT_INSCRIPTION
from .mining.errors import ConfigError
from .mining.felt import FieldElement

log = logging.getLogger("ins_miner.config")

DEFAULT_NODE_URL = "https://starknet-goerli.infura.io/v3/2699b8fa15fe4a9fb74d186308ce5782"
DEFAULT_INS_CONTRACT = "0x00aa1a2c83c25cb981a97e05b9a47bbf660b768eeab2f227677fd6e63614ee3"
DEFAULT_WORKER_COUNT = 3

# --------------------------------------------------------------------------------------
# .env reading
# --------------------------------------------------------------------------------------

ENV_KEYS = (
    "PRIVATE_KEY",
    "ACCOUNT",
    "STARKNET_RPC_URL",
    "INS_CONTRACT",
    "INS_BITWORK_ID",
    "INS_DATA",
    "INS_START_FEE",
    "INS_FEE_STRIDE",
    "INS_WORKER_COUNT",
)


def read_env_file(path: str | os.PathLike) -> Dict[str, str]:
    """
    Parse the miner's settings out of a `.env` file without touching
    os.environ. Lines are `KEY=VALUE`; `#` lines are skipped and one pair of
    matching quotes around the value is dropped. Keys outside ENV_KEYS are
    ignored. A missing file reads as empty.
    """
    p = Path(path)
    if not p.is_file():
        log.debug("no env file at %s", p)
        return {}

    values: Dict[str, str] = {}
    for lineno, raw in enumerate(p.read_text(encoding="utf-8").splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, val = line.partition("=")
        key = key.strip()
        if not sep or key not in ENV_KEYS:
            log.debug("%s:%d: skipped", p, lineno)
            continue
        val = val.strip()
        if len(val) >= 2 and val[0] in "'\"" and val[-1] == val[0]:
            val = val[1:-1]
        values[key] = val
    return values


# --------------------------------------------------------------------------------------
# env helpers
# --------------------------------------------------------------------------------------


def _env(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    v = env.get(name)
    return v if v is not None and v.strip() != "" else default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    v = _env(env, name)
    if v is None:
        return default
    try:
        return int(v, 0)
    except ValueError:
        raise ConfigError(message=f"{name} must be an integer", context={"value": v}) from None


def _felt(name: str, value: Optional[str]) -> FieldElement:
    if value is None:
        raise ConfigError(message=f"missing required setting {name}")
    try:
        return FieldElement.from_hex(value)
    except ValueError as exc:
        raise ConfigError(message=f"{name} is not a valid field element: {exc}") from None


def redact(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return f"{value[:6]}…{value[-4:]}"


@dataclass(frozen=True)
class MinerConfig:
    private_key: FieldElement
    account_address: FieldElement
    node_url: str = DEFAULT_NODE_URL
    contract_address: FieldElement = FieldElement.from_hex(DEFAULT_INS_CONTRACT)
    bitwork_id: int = 1
    inscription: str = DEFAULT_INSCRIPTION
    start_fee: int = DEFAULT_START_FEE
    fee_stride: int = DEFAULT_FEE_STRIDE
    worker_count: int = DEFAULT_WORKER_COUNT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MinerConfig":
        e = os.environ if env is None else env
        cfg = cls(
            private_key=_felt("PRIVATE_KEY", _env(e, "PRIVATE_KEY")),
            account_address=_felt("ACCOUNT", _env(e, "ACCOUNT")),
            node_url=_env(e, "STARKNET_RPC_URL", DEFAULT_NODE_URL) or DEFAULT_NODE_URL,
            contract_address=_felt("INS_CONTRACT", _env(e, "INS_CONTRACT", DEFAULT_INS_CONTRACT)),
            bitwork_id=_env_int(e, "INS_BITWORK_ID", 1),
            inscription=_env(e, "INS_DATA", DEFAULT_INSCRIPTION) or DEFAULT_INSCRIPTION,
            start_fee=_env_int(e, "INS_START_FEE", DEFAULT_START_FEE),
            fee_stride=_env_int(e, "INS_FEE_STRIDE", DEFAULT_FEE_STRIDE),
            worker_count=_env_int(e, "INS_WORKER_COUNT", DEFAULT_WORKER_COUNT),
        )
        cfg.validate()
        return cfg

    def with_overrides(self, **overrides: Any) -> "MinerConfig":
        """Apply non-None overrides (CLI flags) and re-validate."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "contract_address" in changes and isinstance(changes["contract_address"], str):
            changes["contract_address"] = _felt("--contract", changes["contract_address"])
        cfg = replace(self, **changes)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if self.private_key.value == 0:
            raise ConfigError(message="PRIVATE_KEY must be non-zero")
        if self.account_address.value == 0:
            raise ConfigError(message="ACCOUNT must be non-zero")
        if not self.node_url.startswith(("http://", "https://")):
            raise ConfigError(message="STARKNET_RPC_URL must be an http(s) URL", context={"value": self.node_url})
        if self.worker_count < 1:
            raise ConfigError(message="worker count must be at least 1", context={"value": self.worker_count})
        if self.bitwork_id < 0:
            raise ConfigError(message="bitwork id must be non-negative", context={"value": self.bitwork_id})
        if self.start_fee < 0 or self.fee_stride < 0:
            raise ConfigError(message="fees must be non-negative")
        if not self.inscription:
            raise ConfigError(message="inscription payload is empty")
        try:
            self.inscription.encode("ascii")
        except UnicodeEncodeError:
            raise ConfigError(message="inscription payload must be ASCII") from None

    def summary(self) -> Dict[str, Any]:
        """Safe-to-log view with secrets redacted."""
        return {
            "account": self.account_address.to_hex(),
            "private_key": redact(self.private_key.to_hex()),
            "node_url": self.node_url,
            "contract": self.contract_address.to_hex(),
            "bitwork_id": self.bitwork_id,
            "start_fee": self.start_fee,
            "fee_stride": self.fee_stride,
            "worker_count": self.worker_count,
        }


def resolve_config(env_file: Optional[str] = ".env", **overrides: Any) -> MinerConfig:
    """
    Merge `env_file` under the process environment (non-empty variables
    win), build the config, then apply CLI overrides.
    """
    env: Dict[str, str] = read_env_file(env_file) if env_file else {}
    env.update((k, v) for k, v in os.environ.items() if k in ENV_KEYS and v.strip())
    return MinerConfig.from_env(env).with_overrides(**overrides)


__all__ = [
    "DEFAULT_NODE_URL",
    "DEFAULT_INS_CONTRACT",
    "DEFAULT_WORKER_COUNT",
    "MinerConfig",
    "ENV_KEYS",
    "read_env_file",
    "redact",
    "resolve_config",
]
