"""
Full runs against a live regtest node.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from txreport.config import Settings
from txreport.models import WalletStatus
from txreport.pipeline import Pipeline
from txreport.report import report_lines
from txreport.rpc import RpcClient

pytestmark = pytest.mark.docker


def test_node_is_regtest(live_settings: Settings) -> None:
    with RpcClient(live_settings.endpoint()) as node:
        assert node.get_blockchain_info().chain == "regtest"


def test_full_run(live_settings: Settings) -> None:
    result = Pipeline(live_settings).run()
    record = result.record

    assert all(w.loaded for w in result.wallets)
    assert record.receiver_amount == 20 * 100_000_000
    assert record.fee > 0
    assert record.is_balanced()

    lines = Path(live_settings.output_path).read_text().splitlines()
    assert lines == report_lines(record)

    with RpcClient(live_settings.endpoint()) as node:
        assert node.get_block_hash(record.block_height) == record.block_hash


def test_second_run_reuses_wallets(live_settings: Settings) -> None:
    Pipeline(live_settings).run()
    second = Pipeline(live_settings).run()

    assert {w.status for w in second.wallets} == {WalletStatus.ALREADY_LOADED}
    assert second.maturation.blocks_mined == 1


@pytest.mark.parametrize("payment_method", ["send"])
def test_send_payment_method(live_settings: Settings, payment_method: str) -> None:
    settings = live_settings.model_copy(update={"payment_method": payment_method})

    record = Pipeline(settings).run().record

    assert record.is_balanced()
    assert record.receiver_amount == 20 * 100_000_000
