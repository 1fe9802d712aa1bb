"""
End-to-end run: provision wallets, mature coinbase, transfer, extract, report.

Steps run strictly in sequence. Any failure aborts the run; it is re-raised
as StepError naming the step that failed.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from pathlib import Path

import httpx
from loguru import logger

from txreport.config import NetworkType, NodeEndpoint, Settings
from txreport.errors import ContractError, StepError, TxReportError
from txreport.extractor import ProvenanceExtractor
from txreport.mining import MaturationDriver, MaturationResult
from txreport.models import BlockchainInfo, SettlementRecord, WalletHandle, btc_to_sats
from txreport.report import write_report
from txreport.rpc import RpcClient
from txreport.transfer import TransferExecutor, TransferResult
from txreport.wallets import WalletProvisioner

# getblockchaininfo "chain" value for each network
CHAIN_NAMES = {
    NetworkType.MAINNET: "main",
    NetworkType.TESTNET: "test",
    NetworkType.SIGNET: "signet",
    NetworkType.REGTEST: "regtest",
}


@contextmanager
def step(name: str) -> Iterator[None]:
    logger.info(f"--- {name}")
    try:
        yield
    except StepError:
        raise
    except (TxReportError, httpx.HTTPError, OSError, ValueError) as e:
        logger.error(f"{name} failed: {e}")
        raise StepError(name, e) from e


@dataclass(frozen=True)
class RunResult:
    chain: BlockchainInfo
    wallets: list[WalletHandle]
    maturation: MaturationResult
    transfer: TransferResult
    record: SettlementRecord
    report_path: Path


class Pipeline:
    """
    Orchestrates a full run against one node.

    Args:
        settings: Immutable run configuration
        transport: Optional httpx transport shared by all RPC clients (tests
            inject ``httpx.MockTransport`` here)
    """

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    def _client(self, endpoint: NodeEndpoint) -> RpcClient:
        return RpcClient(endpoint, timeout=self.settings.rpc_timeout, transport=self.transport)

    def check_chain(self, node: RpcClient) -> BlockchainInfo:
        info = node.get_blockchain_info()
        logger.info(f"Blockchain info: chain={info.chain} blocks={info.blocks}")
        expected = CHAIN_NAMES[self.settings.network]
        if info.chain != expected:
            raise ContractError(f"Node runs chain '{info.chain}', expected '{expected}'")
        return info

    def run(self) -> RunResult:
        settings = self.settings
        endpoint = settings.endpoint()
        miner_name, trader_name = settings.wallet_names

        with ExitStack() as stack:
            node = stack.enter_context(self._client(endpoint))
            miner_rpc = stack.enter_context(self._client(endpoint.for_wallet(miner_name)))
            trader_rpc = stack.enter_context(self._client(endpoint.for_wallet(trader_name)))

            with step("Check node"):
                chain = self.check_chain(node)

            with step("Provision wallets"):
                wallets = WalletProvisioner(node).provision(settings.wallet_names)

            with step("Mature coinbase"):
                maturation = MaturationDriver(
                    miner_rpc, maturity=settings.coinbase_maturity, label=settings.mining_label
                ).mature()

            with step("Transfer"):
                transfer = TransferExecutor(
                    miner_rpc,
                    trader_rpc,
                    amount=btc_to_sats(settings.transfer_amount_btc),
                    label=settings.receiving_label,
                    payment_method=settings.payment_method,
                ).execute(sender_address=maturation.address)

            with step("Extract transaction details"):
                record = ProvenanceExtractor(miner_rpc, settings.network).extract(
                    transfer.txid, transfer.receiver_address
                )
                self._check_confirmation(node, record, transfer)

            with step("Write report"):
                report_path = write_report(record, settings.output_path)

        return RunResult(
            chain=chain,
            wallets=wallets,
            maturation=maturation,
            transfer=transfer,
            record=record,
            report_path=report_path,
        )

    def extract_only(self, txid: str, receiver_address: str) -> SettlementRecord:
        """Extract and report an already confirmed transaction of the miner wallet."""
        endpoint = self.settings.endpoint().for_wallet(self.settings.miner_wallet)
        with self._client(endpoint) as wallet_rpc:
            with step("Extract transaction details"):
                record = ProvenanceExtractor(wallet_rpc, self.settings.network).extract(
                    txid, receiver_address
                )
            with step("Write report"):
                write_report(record, self.settings.output_path)
        return record

    @staticmethod
    def _check_confirmation(
        node: RpcClient, record: SettlementRecord, transfer: TransferResult
    ) -> None:
        if record.block_hash != transfer.block_hash:
            raise ContractError(
                f"Transaction confirmed in {record.block_hash}, "
                f"expected the block just mined ({transfer.block_hash})"
            )
        if node.get_block_hash(record.block_height) != record.block_hash:
            raise ContractError(
                f"Block at height {record.block_height} is not {record.block_hash}"
            )
        if record.receiver_amount != transfer.amount:
            raise ContractError(
                f"Receiver got {record.receiver_amount} sats, sent {transfer.amount}"
            )
