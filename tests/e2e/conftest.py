"""
E2E test configuration and fixtures.

These tests talk to a real Bitcoin Core node in regtest mode, e.g.:

    docker run --rm -p 18443:18443 bitcoin/bitcoin:latest \
        -regtest -server -rpcuser=alice -rpcpassword=password \
        -rpcbind=0.0.0.0 -rpcallowip=0.0.0.0/0 -fallbackfee=0.0002

They are marked ``docker`` and excluded by default; run with ``-m docker``.
"""

from __future__ import annotations

import os
import socket
from pathlib import Path
from urllib.parse import urlparse

import pytest
from loguru import logger

from txreport.config import Settings
from txreport.constants import DEFAULT_RPC_PORT, DEFAULT_RPC_URL


def is_port_open(host: str, port: int, timeout: float = 1.0) -> bool:
    """Check if a TCP port is open."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        return sock.connect_ex((host, port)) == 0
    finally:
        sock.close()


@pytest.fixture(scope="session")
def bitcoin_rpc_url() -> str:
    return os.environ.get("BITCOIN_RPC_URL", DEFAULT_RPC_URL)


@pytest.fixture(scope="session", autouse=True)
def require_bitcoin(bitcoin_rpc_url: str) -> None:
    parsed = urlparse(bitcoin_rpc_url)
    host, port = parsed.hostname or "127.0.0.1", parsed.port or DEFAULT_RPC_PORT
    if not is_port_open(host, port):
        logger.warning(f"Bitcoin Core not accessible on {host}:{port}")
        pytest.skip(f"Bitcoin Core regtest node not running on {host}:{port}")


@pytest.fixture
def live_settings(bitcoin_rpc_url: str, tmp_path: Path) -> Settings:
    return Settings(
        rpc_url=bitcoin_rpc_url,
        rpc_user=os.environ.get("BITCOIN_RPC_USER", "alice"),
        rpc_password=os.environ.get("BITCOIN_RPC_PASSWORD", "password"),
        output_path=str(tmp_path / "out.txt"),
    )
