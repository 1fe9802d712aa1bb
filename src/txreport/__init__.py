"""
txreport - Regtest transfer provenance reporting.

Drives a Bitcoin Core regtest node through wallet setup, coinbase maturation
and a single transfer, then rebuilds the transfer's settlement detail from
node data.
"""

__version__ = "0.1.0"

from txreport.config import NetworkType, NodeEndpoint, Settings
from txreport.errors import (
    AmbiguousOutputsError,
    ContractError,
    DataShapeError,
    MaturationError,
    RpcError,
    RpcProtocolError,
    StepError,
    TxReportError,
)
from txreport.extractor import OutputRole, ProvenanceExtractor, classify_output
from txreport.models import SettlementRecord
from txreport.rpc import RpcClient

__all__ = [
    "AmbiguousOutputsError",
    "ContractError",
    "DataShapeError",
    "MaturationError",
    "NetworkType",
    "NodeEndpoint",
    "OutputRole",
    "ProvenanceExtractor",
    "RpcClient",
    "RpcError",
    "RpcProtocolError",
    "SettlementRecord",
    "Settings",
    "StepError",
    "TxReportError",
    "classify_output",
]
