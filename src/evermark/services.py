"""Wire configuration and secrets into the running object graph.

Shared by ``evermark serve`` (HTTP API), ``evermark create`` and
``evermark bot`` so every entry point builds the pipeline the same way.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from evermark.bot.processor import CommandProcessor
from evermark.bot.responses import ResponseSender
from evermark.bot.webhook import WebhookHandler
from evermark.config import EvermarkConfig, Secrets
from evermark.content.registry import default_registry
from evermark.db.connection import Database
from evermark.db.repository import Repository
from evermark.db.schema import initialize
from evermark.farcaster import NeynarClient
from evermark.minting import Minter, MintQueue
from evermark.pipeline import EvermarkService
from evermark.storage.ipfs import PinataClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: EvermarkConfig
    secrets: Secrets
    conn: sqlite3.Connection
    repo: Repository
    neynar: NeynarClient
    service: EvermarkService
    processor: CommandProcessor
    sender: ResponseSender
    webhook: WebhookHandler
    mint_queue: MintQueue | None = None

    def close(self) -> None:
        if self.mint_queue is not None:
            self.mint_queue.shutdown(wait=True)
        self.conn.close()


def open_database(path: Path | str) -> sqlite3.Connection:
    """Open (creating if needed) the database at *path* with the schema applied."""
    conn = Database(path).connect()
    initialize(conn)
    return conn


def _mint_queue(cfg: EvermarkConfig, secrets: Secrets, repo: Repository) -> MintQueue | None:
    if not cfg.chain.enabled:
        return None
    if not secrets.bot_private_key:
        logger.warning("chain.enabled is set but BOT_PRIVATE_KEY is missing; minting disabled")
        return None
    minter = Minter(cfg.chain.rpc_url, cfg.chain.nft_contract, secrets.bot_private_key)
    logger.info("Minting enabled from %s", minter.address)
    return MintQueue(minter, repo, max_workers=cfg.chain.max_workers)


def build_services(
    cfg: EvermarkConfig,
    secrets: Secrets,
    conn: sqlite3.Connection | None = None,
) -> Services:
    """Build every component from *cfg* and *secrets*.

    Args:
        cfg: Loaded configuration.
        secrets: Credentials from the environment.
        conn: Existing connection to reuse; opened from ``database.path`` when None.
    """
    if conn is None:
        conn = open_database(cfg.database.path)
    repo = Repository(conn)
    timeout = cfg.http.timeout

    neynar = NeynarClient(
        secrets.neynar_api_key,
        secrets.bot_signer_uuid,
        api_base=cfg.neynar.api_base,
        timeout=timeout,
    )
    ipfs = None
    if secrets.pinata_jwt:
        ipfs = PinataClient(
            secrets.pinata_jwt,
            api_base=cfg.ipfs.api_base,
            gateway=cfg.ipfs.gateway,
            timeout=timeout,
        )
    else:
        logger.warning("PINATA_JWT not set; metadata uploads will be recorded as ipfs_failed")

    mint_queue = _mint_queue(cfg, secrets, repo)
    service = EvermarkService(
        repo,
        default_registry(neynar, timeout=timeout),
        ipfs,
        mint_queue,
    )
    processor = CommandProcessor(service, cfg.insights)
    sender = ResponseSender(
        neynar,
        max_length=cfg.bot.max_reply_length,
        thread_delay=cfg.bot.thread_delay,
    )
    webhook = WebhookHandler(processor, sender, neynar, cfg.bot.username, cfg.bot.fid)

    return Services(
        config=cfg,
        secrets=secrets,
        conn=conn,
        repo=repo,
        neynar=neynar,
        service=service,
        processor=processor,
        sender=sender,
        webhook=webhook,
        mint_queue=mint_queue,
    )
