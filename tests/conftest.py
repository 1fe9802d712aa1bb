"""
Shared fixtures: an in-memory regtest node and clients talking to it.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fake_node import FakeNode

from txreport.config import NetworkType, Settings
from txreport.rpc import RpcClient


@pytest.fixture
def fake_node() -> FakeNode:
    return FakeNode(maturity=5)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        rpc_user="alice",
        rpc_password="password",
        network=NetworkType.REGTEST,
        miner_wallet="Miner",
        trader_wallet="Trader",
        coinbase_maturity=5,
        output_path=str(tmp_path / "out.txt"),
    )


@pytest.fixture
def node_rpc(fake_node: FakeNode, settings: Settings) -> Iterator[RpcClient]:
    with RpcClient(settings.endpoint(), transport=fake_node.transport()) as client:
        yield client


@pytest.fixture
def wallet_rpc(fake_node: FakeNode, settings: Settings):
    """Factory for wallet-scoped clients; the wallet is created on first use."""
    clients: list[RpcClient] = []

    def make(name: str) -> RpcClient:
        if name not in fake_node.on_disk:
            fake_node.rpc_createwallet(name)
        client = RpcClient(settings.endpoint().for_wallet(name), transport=fake_node.transport())
        clients.append(client)
        return client

    yield make
    for client in clients:
        client.close()
