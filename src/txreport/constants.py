"""
Bitcoin network constants used when driving a regtest node.
"""

from __future__ import annotations

# Satoshis per bitcoin; node RPC amounts are BTC with 8 decimal places
SATS_PER_BTC = 100_000_000
BTC_DECIMALS = 8

# Coinbase outputs become spendable after this many additional blocks.
# Consensus rule on every Bitcoin network, but kept configurable.
COINBASE_MATURITY = 100

# Default regtest RPC endpoint
DEFAULT_RPC_URL = "http://127.0.0.1:18443"
DEFAULT_RPC_PORT = 18443

# Timeout for regular RPC calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0

# Labels used for wallet addresses
MINING_LABEL = "Mining Reward"
RECEIVING_LABEL = "Received"

DEFAULT_OUTPUT_PATH = "out.txt"
