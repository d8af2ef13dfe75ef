"""Directive file language: tokens, dispensers and server blocks."""

from repo_sync.directives.controller import Controller, ServerBlock, load_server_blocks
from repo_sync.directives.dispenser import Dispenser
from repo_sync.directives.lexer import Token, tokenize

__all__ = [
    "Controller",
    "Dispenser",
    "ServerBlock",
    "Token",
    "load_server_blocks",
    "tokenize",
]
