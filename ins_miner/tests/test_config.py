import os

import pytest

from ins_miner.config import (
    DEFAULT_INS_CONTRACT,
    DEFAULT_WORKER_COUNT,
    MinerConfig,
    read_env_file,
    resolve_config,
)
from ins_miner.mining.calls import DEFAULT_INSCRIPTION
from ins_miner.mining.errors import ConfigError
from ins_miner.mining.felt import FieldElement

BASE_ENV = {"PRIVATE_KEY": "0x1234567890abcdef", "ACCOUNT": "0x0abc"}


def test_defaults_from_minimal_env():
    cfg = MinerConfig.from_env(BASE_ENV)
    assert cfg.private_key == FieldElement(0x1234567890ABCDEF)
    assert cfg.account_address == FieldElement(0xABC)
    assert cfg.contract_address == FieldElement.from_hex(DEFAULT_INS_CONTRACT)
    assert cfg.worker_count == DEFAULT_WORKER_COUNT == 3
    assert cfg.start_fee == 6_000_000_000_000
    assert cfg.fee_stride == 65536
    assert cfg.inscription == DEFAULT_INSCRIPTION


@pytest.mark.parametrize("missing", ["PRIVATE_KEY", "ACCOUNT"])
def test_missing_credentials_are_fatal(missing):
    env = {k: v for k, v in BASE_ENV.items() if k != missing}
    with pytest.raises(ConfigError) as info:
        MinerConfig.from_env(env)
    assert missing in info.value.message


@pytest.mark.parametrize(
    "extra",
    [
        {"ACCOUNT": "not-hex"},
        {"INS_WORKER_COUNT": "0"},
        {"INS_WORKER_COUNT": "three"},
        {"STARKNET_RPC_URL": "ftp://node"},
        {"INS_DATA": "café"},
    ],
)
def test_malformed_values_are_fatal(extra):
    with pytest.raises(ConfigError):
        MinerConfig.from_env({**BASE_ENV, **extra})


def test_overrides_win_and_revalidate():
    cfg = MinerConfig.from_env(BASE_ENV).with_overrides(worker_count=8, contract_address="0x99", node_url=None)
    assert cfg.worker_count == 8
    assert cfg.contract_address == FieldElement(0x99)
    with pytest.raises(ConfigError):
        cfg.with_overrides(worker_count=0)


def test_summary_redacts_private_key():
    cfg = MinerConfig.from_env({**BASE_ENV, "PRIVATE_KEY": "0x" + "7" * 60})
    summary = cfg.summary()
    assert "7" * 60 not in str(summary)
    assert summary["account"] == "0xabc"


def test_env_file_parsing(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# credentials\n"
        "PRIVATE_KEY='0x1234567890abcdef'\n"
        'ACCOUNT="0x0abc"\n'
        "INS_DATA='{\"p\": \"brc-20\"}'\n"
        "UNRELATED=1\n"
        "garbage line\n"
    )
    assert read_env_file(env_file) == {
        "PRIVATE_KEY": "0x1234567890abcdef",
        "ACCOUNT": "0x0abc",
        "INS_DATA": '{"p": "brc-20"}',
    }


def test_env_file_sits_under_process_env(tmp_path, monkeypatch):
    for key in ("PRIVATE_KEY", "ACCOUNT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("INS_BITWORK_ID", "5")
    monkeypatch.setenv("INS_WORKER_COUNT", "")
    env_file = tmp_path / ".env"
    env_file.write_text("PRIVATE_KEY=0x1234567890abcdef\nACCOUNT=0x0abc\nINS_BITWORK_ID=2\nINS_WORKER_COUNT=4\n")

    cfg = resolve_config(env_file=str(env_file), start_fee=42)
    assert cfg.bitwork_id == 5
    assert cfg.worker_count == 4
    assert cfg.start_fee == 42
    assert "PRIVATE_KEY" not in os.environ


def test_missing_dotenv_file_is_tolerated(tmp_path, monkeypatch):
    for k, v in BASE_ENV.items():
        monkeypatch.setenv(k, v)
    cfg = resolve_config(env_file=str(tmp_path / "absent.env"))
    assert cfg.account_address == FieldElement(0xABC)
