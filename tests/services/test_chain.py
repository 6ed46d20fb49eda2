"""Tests for the chain RPC clients."""

from __future__ import annotations

import asyncio

import pytest
from hexbytes import HexBytes
from web3.exceptions import TransactionNotFound

from rentstream.core.errors import ChainUnavailable
from rentstream.core.settings import Settings
from rentstream.services.chain import (
    InMemoryChainClient,
    TxReceipt,
    Web3ChainClient,
    build_chain_client,
    receipt_from_rpc,
)

TX_HASH = "0x" + "ab" * 32


def test_receipt_from_rpc_normalises_fields():
    receipt = receipt_from_rpc(
        {
            "transactionHash": HexBytes(TX_HASH),
            "status": 1,
            "to": "0x7AdceCe47B501fD61326Cec01E5711a6B9AB334e",
            "from": "0x00000000000000000000000000000000000000AA",
            "blockNumber": 12,
            "logs": [
                {
                    "address": "0x7AdceCe47B501fD61326Cec01E5711a6B9AB334e",
                    "topics": [HexBytes("0x" + "01" * 32)],
                    "data": HexBytes("0x" + "00" * 64),
                    "logIndex": 3,
                }
            ],
        }
    )

    assert receipt.tx_hash == TX_HASH
    assert receipt.succeeded
    assert receipt.to == "0x7adcece47b501fd61326cec01e5711a6b9ab334e"
    assert receipt.logs[0].topics == ["0x" + "01" * 32]
    assert receipt.logs[0].data == "0x" + "00" * 64
    assert receipt.logs[0].log_index == 3


class TestWeb3ChainClient:

    @pytest.mark.asyncio
    async def test_unknown_transaction_returns_none(self, mocker):
        client = Web3ChainClient("http://rpc.test", timeout_seconds=1)
        mocker.patch.object(
            client._w3.eth,
            "get_transaction_receipt",
            new_callable=mocker.AsyncMock,
            side_effect=TransactionNotFound("nope"),
        )

        assert await client.get_transaction_receipt(TX_HASH) is None

    @pytest.mark.asyncio
    async def test_rpc_error_maps_to_chain_unavailable(self, mocker):
        client = Web3ChainClient("http://rpc.test", timeout_seconds=1)
        mocker.patch.object(
            client._w3.eth,
            "get_transaction_receipt",
            new_callable=mocker.AsyncMock,
            side_effect=ConnectionError("refused"),
        )

        with pytest.raises(ChainUnavailable):
            await client.get_transaction_receipt(TX_HASH)

    @pytest.mark.asyncio
    async def test_timeout_maps_to_chain_unavailable(self, mocker):
        client = Web3ChainClient("http://rpc.test", timeout_seconds=0.01)

        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        mocker.patch.object(
            client._w3.eth, "get_block_number", new_callable=mocker.AsyncMock, side_effect=hang
        )

        with pytest.raises(ChainUnavailable):
            await client.get_block_number()


class TestInMemoryChainClient:

    @pytest.mark.asyncio
    async def test_registered_receipt_is_returned(self):
        chain = InMemoryChainClient()
        chain.add_receipt(
            TxReceipt(tx_hash=TX_HASH, status=1, to=None, sender=None, block_number=None), value=7
        )

        assert (await chain.get_transaction_receipt(TX_HASH.upper().replace("0X", "0x"))).status == 1
        assert (await chain.get_transaction(TX_HASH)).value == 7
        assert await chain.get_block_number() == 1
        assert await chain.get_transaction_receipt("0x" + "cd" * 32) is None


def test_build_chain_client_selects_backend():
    assert isinstance(build_chain_client(Settings(CHAIN_BACKEND="memory")), InMemoryChainClient)
    assert isinstance(
        build_chain_client(Settings(CHAIN_BACKEND="web3", CHAIN_RPC_URL="http://rpc.test")),
        Web3ChainClient,
    )
