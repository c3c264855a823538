import pytest

from ins_miner.ledger_protocol import LedgerProtocolError
from ins_miner.mining.calls import selector_from_name
from ins_miner.mining.errors import OracleError
from ins_miner.mining.felt import FieldElement
from ins_miner.mining.prefix_window import (
    DIGEST_HEX_WIDTH,
    AcceptanceWindow,
    RangeOracle,
    derive_window,
)

from .conftest import FakeLedger

CONTRACT = FieldElement.from_hex("0x00aa1a2c83c25cb981a97e05b9a47bbf660b768eeab2f227677fd6e63614ee3")


@pytest.mark.parametrize("prefix", ["0", "00aa", "aa", "0x1234", "fff", "a" * DIGEST_HEX_WIDTH])
def test_window_bounds_have_digest_width(prefix):
    window = derive_window(prefix)
    assert window.min <= window.max
    digits = prefix[2:] if prefix.startswith("0x") else prefix
    assert format(int(window.max), "x").rjust(DIGEST_HEX_WIDTH, "0").startswith(digits)
    assert format(int(window.min), "x").rjust(DIGEST_HEX_WIDTH, "0") == digits.ljust(DIGEST_HEX_WIDTH, "0")
    assert len(format(int(window.max), f"0{DIGEST_HEX_WIDTH}x")) == DIGEST_HEX_WIDTH


def test_scenario_window():
    window = derive_window("00aa")
    assert window.min == FieldElement.from_hex("00aa" + "0" * (DIGEST_HEX_WIDTH - 4))
    assert window.max == FieldElement.from_hex("00aa" + "f" * (DIGEST_HEX_WIDTH - 4))
    assert window.contains(window.min)
    assert window.contains(window.max)
    assert not window.contains(int(window.max) + 1)
    assert not window.contains(int(window.min) - 1)


@pytest.mark.parametrize("prefix", ["", "0x", "xyz", "a" * (DIGEST_HEX_WIDTH + 1)])
def test_invalid_prefix_raises(prefix):
    with pytest.raises(OracleError):
        derive_window(prefix)


def test_degenerate_window_flag():
    zero = FieldElement(0)
    assert AcceptanceWindow(max=zero, min=zero).is_degenerate
    assert not derive_window("0").is_degenerate


def test_window_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        AcceptanceWindow(max=FieldElement(1), min=FieldElement(2))


@pytest.mark.asyncio
async def test_oracle_reads_prefix_once():
    ledger = FakeLedger(prefix=[FieldElement(0xAA)])
    window = await RangeOracle(ledger, CONTRACT, bitwork_id=1).fetch_window()
    assert window == derive_window("aa")
    assert ledger.calls == [(CONTRACT, selector_from_name("get_prefix"), [FieldElement(1)])]


@pytest.mark.asyncio
async def test_oracle_empty_result_is_fatal():
    ledger = FakeLedger(prefix=None)
    with pytest.raises(OracleError) as info:
        await RangeOracle(ledger, CONTRACT).fetch_window()
    assert info.value.retryable is False
    assert "empty" in info.value.message


@pytest.mark.asyncio
async def test_oracle_transport_failure_is_wrapped():
    class Broken(FakeLedger):
        async def call(self, *args):
            raise LedgerProtocolError("connection refused")

    with pytest.raises(OracleError) as info:
        await RangeOracle(Broken(), CONTRACT).fetch_window()
    assert isinstance(info.value.__cause__, LedgerProtocolError)
