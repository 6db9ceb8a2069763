"""Tests for background minting."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from evermark.content.base import ContentMetadata, ContentType
from evermark.errors import ExternalServiceError
from evermark.minting import Minter, MintQueue

# Well-known test key (Hardhat account #0); never holds real funds.
TEST_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
CONTRACT = "0x504a0BDC3aea29237a6f8E53D0ECDA8e4c9009F2"


def test_minter_requires_key() -> None:
    with pytest.raises(ValueError, match="BOT_PRIVATE_KEY"):
        Minter("https://rpc.example", CONTRACT, "")


def test_minter_address_from_key() -> None:
    minter = Minter("https://rpc.example", CONTRACT, TEST_KEY)
    assert minter.address == "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


def test_mint_wraps_rpc_errors() -> None:
    minter = Minter("https://rpc.example", CONTRACT, TEST_KEY)
    with patch.object(minter, "_w3") as w3:
        w3.eth.get_transaction_count.side_effect = ConnectionError("rpc down")
        with pytest.raises(ExternalServiceError, match="Chain service error: mint failed"):
            minter.mint("ipfs://Qm", "Title", "Author")


def test_mint_reverted_receipt() -> None:
    minter = Minter("https://rpc.example", CONTRACT, TEST_KEY)
    minter._contract = MagicMock()
    minter._account = MagicMock(address="0xabc")
    with patch.object(minter, "_w3") as w3:
        w3.eth.send_raw_transaction.return_value = b"\x12\x34"
        w3.eth.wait_for_transaction_receipt.return_value = {"status": 0}
        with pytest.raises(ExternalServiceError, match="reverted"):
            minter.mint("ipfs://Qm", "Title", "Author")


def test_mint_success_returns_hex_hash() -> None:
    minter = Minter("https://rpc.example", CONTRACT, TEST_KEY)
    minter._contract = MagicMock()
    minter._account = MagicMock(address="0xabc")
    with patch.object(minter, "_w3") as w3:
        w3.eth.send_raw_transaction.return_value = b"\xbe\xef"
        w3.eth.wait_for_transaction_receipt.return_value = {"status": 1}
        assert minter.mint("ipfs://Qm", "Title", "Author") == "0xbeef"

    minter._contract.functions.mintEvermark.assert_called_once_with("ipfs://Qm", "Title", "Author")


# ---------------------------------------------------------------------------
# MintQueue
# ---------------------------------------------------------------------------


def _record(repo) -> int:
    return repo.add_evermark(
        "https://example.com/a", ContentMetadata(title="A", content_type=ContentType.URL)
    )


def test_queue_stores_tx_hash(repo) -> None:
    token_id = _record(repo)
    minter = MagicMock()
    minter.mint.return_value = "0xfeed"
    queue = MintQueue(minter, repo, max_workers=1)

    assert queue.submit(token_id, "ipfs://Qm", "A", "Unknown").result(timeout=5) == "0xfeed"
    queue.shutdown()

    assert repo.get_evermark(token_id).mint_tx_hash == "0xfeed"


def test_queue_swallows_mint_failure(repo) -> None:
    token_id = _record(repo)
    minter = MagicMock()
    minter.mint.side_effect = ExternalServiceError("Chain", "mint reverted")
    queue = MintQueue(minter, repo, max_workers=1)

    assert queue.submit(token_id, "ipfs://Qm", "A", "Unknown").result(timeout=5) is None
    queue.shutdown()

    assert repo.get_evermark(token_id).mint_tx_hash is None
