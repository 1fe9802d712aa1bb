"""
Bitcoin Core JSON-RPC client.

Thin typed facade over the node's request/response protocol. Calls without a
typed wrapper go through ``call`` and are decoded by the caller.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from txreport.config import NodeEndpoint
from txreport.constants import DEFAULT_RPC_TIMEOUT
from txreport.errors import ContractError, DataShapeError, RpcError, RpcProtocolError
from txreport.models import (
    BlockchainInfo,
    MempoolEntry,
    RawTransaction,
    ReceivedByAddress,
    SendResult,
    WalletTransaction,
    btc_to_sats,
    format_btc,
)


class RpcClient:
    """
    Synchronous JSON-RPC client for one node endpoint.

    One instance per wallet context: use ``NodeEndpoint.for_wallet`` to scope
    calls to a wallet.
    """

    def __init__(
        self,
        endpoint: NodeEndpoint,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.endpoint = endpoint
        self.client = httpx.Client(
            timeout=timeout,
            auth=(endpoint.rpc_user, endpoint.rpc_password),
            transport=transport,
        )
        self._request_id = 0

    def __enter__(self) -> RpcClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def call(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Make an RPC call to Bitcoin Core.

        Args:
            method: RPC method name
            params: Positional parameters

        Returns:
            The ``result`` member of the reply. JSON numbers with a fraction
            are decoded as Decimal.

        Raises:
            RpcError: The node reported an error
            RpcProtocolError: The reply is not JSON-RPC
            httpx.HTTPError: On connection/timeout/HTTP errors
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "1.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        logger.debug(f"RPC {method} {payload['params']}")

        try:
            response = self.client.post(self.endpoint.url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"RPC call timed out: {method} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise

        # Bitcoin Core answers node errors with a JSON body and a non-2xx
        # status, so the body is inspected before the status code.
        try:
            data = response.json(parse_float=Decimal)
        except (json.JSONDecodeError, UnicodeDecodeError):
            data = None

        if not isinstance(data, dict):
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"RPC call failed: {method} - {e}")
                raise
            raise RpcProtocolError(f"Malformed JSON-RPC reply to {method}: {response.text[:200]}")

        error_info = data.get("error")
        if error_info:
            if isinstance(error_info, dict):
                raise RpcError(
                    method, error_info.get("code"), error_info.get("message", str(error_info))
                )
            raise RpcError(method, None, str(error_info))

        if "result" not in data:
            raise RpcProtocolError(f"JSON-RPC reply to {method} has no result")

        response.raise_for_status()
        return data["result"]

    def _typed(self, model: type, method: str, params: list[Any] | None = None) -> Any:
        result = self.call(method, params)
        try:
            return model.model_validate(result)
        except ValidationError as e:
            raise DataShapeError(f"Unexpected {method} result: {e}") from e

    # Chain

    def get_blockchain_info(self) -> BlockchainInfo:
        return self._typed(BlockchainInfo, "getblockchaininfo")

    def get_block_count(self) -> int:
        return int(self.call("getblockcount"))

    def get_block_hash(self, height: int) -> str:
        return self.call("getblockhash", [height])

    def generate_to_address(self, nblocks: int, address: str) -> list[str]:
        """Mine blocks to an address; returns the new block hashes."""
        return self.call("generatetoaddress", [nblocks, address])

    def get_raw_transaction(self, txid: str, blockhash: str | None = None) -> RawTransaction:
        """
        Verbose raw transaction.

        Without -txindex the node only finds confirmed transactions when told
        which block holds them, so pass ``blockhash`` for anything confirmed.
        """
        params: list[Any] = [txid, True]
        if blockhash is not None:
            params.append(blockhash)
        return self._typed(RawTransaction, "getrawtransaction", params)

    def get_mempool_entry(self, txid: str) -> MempoolEntry:
        return self._typed(MempoolEntry, "getmempoolentry", [txid])

    # Wallet management

    def list_wallets(self) -> list[str]:
        return list(self.call("listwallets"))

    def list_wallet_dir(self) -> list[str]:
        """Names of wallets present in the node's wallet directory."""
        result = self.call("listwalletdir")
        return [entry["name"] for entry in result.get("wallets", [])]

    def load_wallet(self, name: str) -> dict[str, Any]:
        return self.call("loadwallet", [name])

    def create_wallet(self, name: str) -> dict[str, Any]:
        return self.call("createwallet", [name])

    # Wallet-scoped calls

    def list_received_by_address(self) -> list[ReceivedByAddress]:
        result = self.call("listreceivedbyaddress")
        try:
            return [ReceivedByAddress.model_validate(entry) for entry in result]
        except ValidationError as e:
            raise DataShapeError(f"Unexpected listreceivedbyaddress result: {e}") from e

    def get_new_address(self, label: str | None = None) -> str:
        return self.call("getnewaddress", [label] if label is not None else [])

    def get_balance(self) -> int:
        """Spendable (trusted, mature) balance in satoshis."""
        return btc_to_sats(self.call("getbalance"))

    def send_to_address(self, address: str, amount_sats: int) -> str:
        """Pay with automatic fee and change; returns the txid."""
        return self.call("sendtoaddress", [address, format_btc(amount_sats)])

    def send(self, outputs: dict[str, int]) -> SendResult:
        """
        Pay through the ``send`` RPC, decoding its result explicitly.

        Raises:
            ContractError: The node reports the transaction as incomplete
        """
        params = [
            [{address: format_btc(sats)} for address, sats in outputs.items()],
            None,  # conf_target
            None,  # estimate_mode
            None,  # fee_rate
            {},  # options
        ]
        try:
            result = SendResult.model_validate(self.call("send", params))
        except ValidationError as e:
            raise DataShapeError(f"Unexpected send result: {e}") from e
        if not result.complete or not result.txid:
            raise ContractError(f"send returned an incomplete transaction: {result}")
        return result

    def get_transaction(self, txid: str) -> WalletTransaction:
        return self._typed(WalletTransaction, "gettransaction", [txid])
