"""
Transaction provenance extraction.

Rebuilds the settlement detail of a confirmed wallet transaction from node
data only:

1. The wallet view (``gettransaction``) gives fee and confirming block.
2. The raw view (``getrawtransaction``) gives inputs and output scripts. It
   is looked up in the confirming block, so the node needs no -txindex.
3. The first input is followed back to the output it spends to find the
   sender address and input amount. The spent transaction belongs to the
   sender wallet, whose view gives the block to look it up in.
4. Each output is classified against the known receiver address as payment,
   change, or unrecognized.

Either a complete, balanced SettlementRecord is produced or an exception is
raised. A spent script without an address form is the only recoverable case
and is recorded as ``UNDECODABLE_ADDRESS``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from txreport.address import UNDECODABLE_ADDRESS, script_to_address, validate_address
from txreport.config import NetworkType
from txreport.errors import AmbiguousOutputsError, ContractError, DataShapeError
from txreport.models import (
    RawTransaction,
    RawTxOutput,
    SettlementRecord,
    UnspentOutput,
    btc_to_sats,
    format_btc,
)
from txreport.rpc import RpcClient


class OutputRole(str, Enum):
    PAYMENT = "payment"
    CHANGE = "change"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class OutputClass:
    """Classification of one transaction output."""

    role: OutputRole
    n: int
    value: int
    address: str | None = None


@dataclass(frozen=True)
class OutputSplit:
    payment: OutputClass
    change: OutputClass | None
    unrecognized: list[OutputClass]


def classify_output(
    output: RawTxOutput, receiver_address: str, network: NetworkType
) -> OutputClass:
    """
    Classify an output against the receiver address.

    Outputs whose script has no address form are UNRECOGNIZED. Address
    comparison is an exact string match.
    """
    value = btc_to_sats(output.value)
    address = script_to_address(output.script_pubkey.hex, network)
    if address is None:
        return OutputClass(role=OutputRole.UNRECOGNIZED, n=output.n, value=value)
    if address.value == receiver_address:
        role = OutputRole.PAYMENT
    else:
        role = OutputRole.CHANGE
    return OutputClass(role=role, n=output.n, value=value, address=address.value)


def split_outputs(classes: Iterable[OutputClass]) -> OutputSplit:
    """
    Pick the single payment and at most one change output.

    Raises:
        ContractError: No output pays the receiver
        AmbiguousOutputsError: More than one payment or change candidate
    """
    by_role: dict[OutputRole, list[OutputClass]] = {role: [] for role in OutputRole}
    for cls in classes:
        by_role[cls.role].append(cls)

    payments = by_role[OutputRole.PAYMENT]
    changes = by_role[OutputRole.CHANGE]

    if not payments:
        raise ContractError("No output pays the receiver address")
    if len(payments) > 1:
        raise AmbiguousOutputsError(
            f"{len(payments)} outputs pay the receiver: {[c.n for c in payments]}"
        )
    if len(changes) > 1:
        raise AmbiguousOutputsError(
            f"{len(changes)} change candidates: {[(c.n, c.address) for c in changes]}"
        )

    return OutputSplit(
        payment=payments[0],
        change=changes[0] if changes else None,
        unrecognized=by_role[OutputRole.UNRECOGNIZED],
    )


class ProvenanceExtractor:
    def __init__(self, sender_rpc: RpcClient, network: NetworkType = NetworkType.REGTEST):
        self.rpc = sender_rpc
        self.network = NetworkType(network)

    def spent_output(self, tx: RawTransaction) -> UnspentOutput:
        """The previous output consumed by the transaction's first input."""
        if not tx.vin:
            raise DataShapeError(f"Transaction {tx.txid} has no inputs")
        first = tx.vin[0]
        if first.txid is None or first.vout is None:
            raise DataShapeError(f"First input of {tx.txid} is a coinbase input")

        prev_wallet_tx = self.rpc.get_transaction(first.txid)
        prev_tx = self.rpc.get_raw_transaction(first.txid, prev_wallet_tx.blockhash)
        if not 0 <= first.vout < len(prev_tx.vout):
            raise DataShapeError(
                f"Output index {first.vout} out of range for {first.txid} "
                f"({len(prev_tx.vout)} outputs)"
            )
        prev_out = prev_tx.vout[first.vout]
        return UnspentOutput(
            txid=first.txid,
            vout=first.vout,
            value=btc_to_sats(prev_out.value),
            script_hex=prev_out.script_pubkey.hex,
        )

    def extract(self, txid: str, receiver_address: str) -> SettlementRecord:
        # Malformed or wrong-network receiver addresses fail before any RPC
        receiver_address = validate_address(receiver_address, self.network).value

        wallet_tx = self.rpc.get_transaction(txid)
        if wallet_tx.blockheight is None or wallet_tx.blockhash is None:
            raise ContractError(f"Transaction {txid} is not confirmed")
        if wallet_tx.fee is None:
            raise ContractError(f"Wallet view of {txid} has no fee")
        raw_tx = self.rpc.get_raw_transaction(txid, wallet_tx.blockhash)

        spent = self.spent_output(raw_tx)
        sender = script_to_address(spent.script_hex, self.network)
        sender_address = sender.value if sender is not None else UNDECODABLE_ADDRESS
        if sender is None:
            logger.warning(f"Spent output {spent.txid}:{spent.vout} has no address form")

        split = split_outputs(
            classify_output(output, receiver_address, self.network) for output in raw_tx.vout
        )
        for skipped in split.unrecognized:
            logger.debug(f"Ignoring output {skipped.n} without address ({skipped.value} sats)")

        record = SettlementRecord(
            txid=txid,
            sender_address=sender_address,
            sender_amount=spent.value,
            receiver_address=receiver_address,
            receiver_amount=split.payment.value,
            change_address=split.change.address if split.change else None,
            change_amount=split.change.value if split.change else 0,
            fee=abs(btc_to_sats(wallet_tx.fee)),
            block_height=wallet_tx.blockheight,
            block_hash=wallet_tx.blockhash,
        )
        if not record.is_balanced():
            raise ContractError(
                f"Amounts of {txid} do not balance: payment {record.receiver_amount} + "
                f"change {record.change_amount} + fee {record.fee} != "
                f"input {record.sender_amount} (sats)"
            )

        logger.info(
            f"Extracted {txid}: input {format_btc(record.sender_amount)}, "
            f"payment {format_btc(record.receiver_amount)}, "
            f"change {format_btc(record.change_amount)}, fee {format_btc(record.fee)} BTC"
        )
        return record
