"""Optional NFT minting of preserved records on an EVM chain.

Minting is fire-and-forget: MintQueue runs jobs on a small thread pool,
stores the transaction hash on success and only logs failures. Callers
never wait on a mint.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from eth_account import Account
from web3 import HTTPProvider, Web3

from evermark.db.repository import Repository
from evermark.errors import ExternalServiceError

logger = logging.getLogger(__name__)

_SERVICE = "Chain"
_RECEIPT_TIMEOUT = 120

EVERMARK_NFT_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "mintEvermark",
        "stateMutability": "payable",
        "inputs": [
            {"name": "metadataURI", "type": "string"},
            {"name": "title", "type": "string"},
            {"name": "creator", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class Minter:
    """Signs and sends ``mintEvermark`` transactions from the bot wallet.

    Args:
        rpc_url: JSON-RPC endpoint of the target chain.
        contract_address: Evermark NFT contract address.
        private_key: Hex private key of the minting wallet.
    """

    def __init__(self, rpc_url: str, contract_address: str, private_key: str) -> None:
        if not private_key:
            raise ValueError("BOT_PRIVATE_KEY is required for minting")
        self._w3 = Web3(HTTPProvider(rpc_url))
        self._account = Account.from_key(private_key)
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=EVERMARK_NFT_ABI,
        )

    @property
    def address(self) -> str:
        return self._account.address

    def mint(self, metadata_uri: str, title: str, creator: str) -> str:
        """Mint one token and wait for the receipt. Returns the tx hash (0x-hex).

        Raises:
            ExternalServiceError: If the transaction cannot be sent or reverts.
        """
        try:
            tx = self._contract.functions.mintEvermark(
                metadata_uri, title, creator
            ).build_transaction(
                {
                    "from": self._account.address,
                    "nonce": self._w3.eth.get_transaction_count(self._account.address),
                    "chainId": self._w3.eth.chain_id,
                }
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=_RECEIPT_TIMEOUT
            )
        except ExternalServiceError:
            raise
        except Exception as exc:
            raise ExternalServiceError(_SERVICE, f"mint failed: {exc}") from exc

        if receipt["status"] != 1:
            raise ExternalServiceError(_SERVICE, f"mint reverted: {tx_hash.hex()}")
        return Web3.to_hex(tx_hash)


class MintQueue:
    """Background mint jobs backed by a ThreadPoolExecutor."""

    def __init__(self, minter: Minter, repo: Repository, max_workers: int = 2) -> None:
        self._minter = minter
        self._repo = repo
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="evermark-mint"
        )

    def submit(self, token_id: int, metadata_uri: str, title: str, creator: str) -> Future:
        """Enqueue a mint for *token_id*. The returned future never raises."""
        logger.info("Queued mint for evermark #%d", token_id)
        return self._executor.submit(self._run, token_id, metadata_uri, title, creator)

    def _run(self, token_id: int, metadata_uri: str, title: str, creator: str) -> str | None:
        try:
            tx_hash = self._minter.mint(metadata_uri, title, creator)
        except Exception:
            logger.exception("Mint failed for evermark #%d", token_id)
            return None
        self._repo.set_mint_tx(token_id, tx_hash)
        logger.info("Minted evermark #%d in %s", token_id, tx_hash)
        return tx_hash

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
