"""Evermark Farcaster bot: command parsing, execution, replies, webhook."""

from evermark.bot.commands import Command, CommandKind, parse
from evermark.bot.processor import CommandProcessor, CommandResult
from evermark.bot.responses import ResponseSender, split_message
from evermark.bot.webhook import WebhookHandler, verify_signature

__all__ = [
    "Command",
    "CommandKind",
    "CommandProcessor",
    "CommandResult",
    "ResponseSender",
    "WebhookHandler",
    "parse",
    "split_message",
    "verify_signature",
]
