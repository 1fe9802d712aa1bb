"""
Exception hierarchy for txreport.

Every failure except the two documented recoveries (wallet provisioning and
per-output script decoding) propagates to the process boundary.
"""

from __future__ import annotations


class TxReportError(Exception):
    """Base class for all txreport errors."""


class RpcError(TxReportError):
    """Error reported by the node, carried verbatim."""

    def __init__(self, method: str, code: int | None, message: str):
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"RPC error {code} in {method}: {message}")


class RpcProtocolError(TxReportError):
    """Response body was not a valid JSON-RPC reply."""


class ContractError(TxReportError):
    """The node behaved contrary to an assumed contract."""


class AmbiguousOutputsError(ContractError):
    """Transaction outputs cannot be split into one payment and one change."""


class DataShapeError(TxReportError):
    """A node result is missing a field or has an unexpected shape."""


class MaturationError(TxReportError):
    """Spendable balance did not appear after the maturity window."""


class StepError(TxReportError):
    """A pipeline step failed; wraps the underlying cause with the step name."""

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"{step} failed: {type(cause).__name__}: {cause}")
