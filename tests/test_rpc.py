"""
Tests for the JSON-RPC client.
"""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest
from fake_node import FOREIGN_ADDRESS, FakeNode

from txreport.config import NodeEndpoint
from txreport.errors import ContractError, RpcError, RpcProtocolError
from txreport.rpc import RpcClient


def client_for(handler) -> RpcClient:
    endpoint = NodeEndpoint(url="http://127.0.0.1:18443", rpc_user="u", rpc_password="p")
    return RpcClient(endpoint, transport=httpx.MockTransport(handler))


class TestCall:
    def test_request_shape(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            assert request.headers["authorization"].startswith("Basic ")
            return httpx.Response(200, json={"result": 7, "error": None, "id": 1})

        with client_for(handler) as client:
            assert client.call("getblockcount") == 7
            client.call("getblockhash", [3])

        assert seen[0]["method"] == "getblockcount"
        assert seen[0]["params"] == []
        assert seen[1]["params"] == [3]
        assert seen[1]["id"] == seen[0]["id"] + 1

    def test_amounts_decoded_as_decimal(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = b'{"result": 29.99997180, "error": null, "id": 1}'
            return httpx.Response(200, content=body)

        with client_for(handler) as client:
            result = client.call("getbalance")
        assert isinstance(result, Decimal)
        assert result == Decimal("29.99997180")

    def test_node_error_is_verbatim(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            error = {"code": -6, "message": "Insufficient funds"}
            return httpx.Response(500, json={"result": None, "error": error, "id": 1})

        with client_for(handler) as client, pytest.raises(RpcError) as exc_info:
            client.call("sendtoaddress", ["addr", "1.0"])

        assert exc_info.value.code == -6
        assert exc_info.value.message == "Insufficient funds"
        assert exc_info.value.method == "sendtoaddress"

    def test_auth_failure_raises_http_error(self, fake_node: FakeNode) -> None:
        endpoint = NodeEndpoint(rpc_user="alice", rpc_password="wrong")
        with RpcClient(endpoint, transport=fake_node.transport()) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.get_block_count()

    def test_connection_error_propagates(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with client_for(handler) as client, pytest.raises(httpx.ConnectError):
            client.call("getblockcount")

    def test_malformed_reply(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"not json")

        with client_for(handler) as client, pytest.raises(RpcProtocolError):
            client.call("getblockcount")

    def test_reply_without_result(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": 1})

        with client_for(handler) as client, pytest.raises(RpcProtocolError):
            client.call("getblockcount")


class TestTypedWrappers:
    def test_blockchain_info(self, node_rpc: RpcClient) -> None:
        info = node_rpc.get_blockchain_info()
        assert info.chain == "regtest"
        assert info.blocks == 0

    def test_balance_in_sats(self, fake_node: FakeNode, wallet_rpc) -> None:
        miner = wallet_rpc("Miner")
        address = miner.get_new_address("Mining Reward")
        assert miner.get_balance() == 0

        fake_node.mine(fake_node.maturity + 1, address)
        assert miner.get_balance() == 50 * 100_000_000

    def test_generate_returns_hashes(self, node_rpc: RpcClient, fake_node: FakeNode) -> None:
        hashes = node_rpc.generate_to_address(3, "bcrt1qw508d6qejxtdg4y5r3zarvary0c5xw7kygt080")
        assert len(hashes) == 3
        assert node_rpc.get_block_count() == 3
        assert node_rpc.get_block_hash(3) == hashes[-1]

    def test_raw_transaction_in_block(self, fake_node: FakeNode, node_rpc: RpcClient) -> None:
        block_hash = node_rpc.generate_to_address(1, FOREIGN_ADDRESS)[0]
        coinbase_txid = fake_node.blocks[1][1][0]

        tx = node_rpc.get_raw_transaction(coinbase_txid, block_hash)

        assert tx.txid == coinbase_txid
        assert tx.vin[0].coinbase is not None
        _, params = fake_node.calls_to("getrawtransaction")[0]
        assert params == [coinbase_txid, True, block_hash]

    def test_send_to_address_formats_amount(self, fake_node: FakeNode, wallet_rpc) -> None:
        miner = wallet_rpc("Miner")
        trader = wallet_rpc("Trader")
        fake_node.mine(fake_node.maturity + 1, miner.get_new_address())

        txid = miner.send_to_address(trader.get_new_address(), 150_000_000)

        _, params = fake_node.calls_to("sendtoaddress")[0]
        assert params[1] == "1.50000000"
        assert miner.get_mempool_entry(txid).fees is not None

    def test_send_result(self, fake_node: FakeNode, wallet_rpc) -> None:
        miner = wallet_rpc("Miner")
        trader = wallet_rpc("Trader")
        fake_node.mine(fake_node.maturity + 1, miner.get_new_address())

        result = miner.send({trader.get_new_address(): 100_000_000})
        assert result.complete is True
        assert result.txid in fake_node.mempool

    def test_send_incomplete_is_contract_error(self, fake_node: FakeNode, wallet_rpc) -> None:
        miner = wallet_rpc("Miner")
        trader = wallet_rpc("Trader")
        fake_node.mine(fake_node.maturity + 1, miner.get_new_address())
        fake_node.send_incomplete = True

        with pytest.raises(ContractError, match="incomplete"):
            miner.send({trader.get_new_address(): 100_000_000})

    def test_wallet_endpoint_path(self) -> None:
        endpoint = NodeEndpoint(url="http://127.0.0.1:18443/").for_wallet("Miner")
        assert endpoint.url == "http://127.0.0.1:18443/wallet/Miner"

    def test_wallet_call_on_unloaded_wallet(self, fake_node: FakeNode, settings) -> None:
        endpoint = settings.endpoint().for_wallet("Nope")
        with RpcClient(endpoint, transport=fake_node.transport()) as client:
            with pytest.raises(RpcError) as exc_info:
                client.get_balance()
        assert exc_info.value.code == -18
