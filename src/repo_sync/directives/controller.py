"""Server blocks and the per-directive controllers handed to setup code."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from repo_sync.directives.dispenser import Dispenser
from repo_sync.directives.lexer import tokenize
from repo_sync.errors import ParseError

if TYPE_CHECKING:
    from repo_sync.directives.lexer import Token
    from repo_sync.sync.setup import StartupAction

logger = logging.getLogger(__name__)


class ServerBlock:
    """One ``addr1, addr2 { ... }`` block of the directive file.

    Every address of the block is a separate logical server, but all of them
    share the same directive tokens. Setup code that must only have an effect
    once for the whole block goes through ``once``.
    """

    def __init__(self, addresses: list[str], directives: dict[str, list[Token]]) -> None:
        self.addresses = addresses
        self.directives = directives
        self._lock = threading.Lock()
        self._done: set[str] = set()

    def once(self, key: str, fn: Callable[[], None]) -> bool:
        """Run ``fn`` if nothing has run under ``key`` yet.

        Returns True when this call ran ``fn``.
        """
        with self._lock:
            if key in self._done:
                return False
            self._done.add(key)
            fn()
            return True


class Controller(Dispenser):
    """A single address's view of one directive in a server block."""

    def __init__(
        self,
        block: ServerBlock,
        address: str,
        directive: str,
        root: Path,
        filename: str = "",
    ) -> None:
        super().__init__(block.directives.get(directive, []), filename)
        self.server_block = block
        self.address = address
        self.directive = directive
        self.root = Path(root)
        self.startup: list[StartupAction] = []

    def once_per_server_block(self, fn: Callable[[], None]) -> bool:
        """Run ``fn`` once for this directive across all addresses of the block."""
        ran = self.server_block.once(self.directive, fn)
        if not ran:
            logger.debug("%s: %s already registered for this server block", self.address, self.directive)
        return ran


def load_server_blocks(text: str, filename: str = "") -> list[ServerBlock]:
    """Split a directive file into server blocks.

    A file may hold several braced blocks, or a single unbraced block whose
    first line lists the addresses.
    """
    tokens = tokenize(text, filename)
    blocks: list[ServerBlock] = []
    i = 0

    while i < len(tokens):
        addresses, i = _read_addresses(tokens, i, filename)

        if i < len(tokens) and tokens[i].text == "{":
            open_token = tokens[i]
            i += 1
            start = i
            depth = 1
            while i < len(tokens):
                if tokens[i].text == "{":
                    depth += 1
                elif tokens[i].text == "}":
                    depth -= 1
                    if depth == 0:
                        break
                i += 1
            if depth:
                raise ParseError("unexpected end of file, missing '}'", filename, open_token.line)
            body = tokens[start:i]
            i += 1
        else:
            if blocks or i < len(tokens) and tokens[i].text == "}":
                line = tokens[i].line if i < len(tokens) else 0
                raise ParseError("expected '{' to open the server block", filename, line)
            body = tokens[i:]
            i = len(tokens)

        blocks.append(ServerBlock(addresses, _group_directives(body)))

    return blocks


def _read_addresses(tokens: list[Token], i: int, filename: str) -> tuple[list[str], int]:
    first = tokens[i]
    if first.text in ("{", "}"):
        raise ParseError(f"expected server address, got '{first.text}'", filename, first.line)

    addresses: list[str] = []
    line = first.line
    continued = False
    while i < len(tokens):
        tok = tokens[i]
        if tok.text == "{" or (tok.line != line and not continued):
            break
        continued = tok.text.endswith(",")
        addresses.extend(part for part in tok.text.split(",") if part)
        line = tok.line
        i += 1
    return addresses, i


def _group_directives(body: list[Token]) -> dict[str, list[Token]]:
    """Group block tokens by directive name, keeping declaration order."""
    groups: dict[str, list[Token]] = {}
    current: list[Token] | None = None
    depth = 0
    last_line = 0

    for tok in body:
        if depth == 0 and tok.line > last_line and tok.text not in ("{", "}"):
            current = groups.setdefault(tok.text, [])
        if current is None:
            raise ParseError(f"unexpected '{tok.text}'", tok.file, tok.line)
        if tok.text == "{":
            depth += 1
        elif tok.text == "}":
            depth -= 1
        current.append(tok)
        last_line = tok.line + tok.text.count("\n")

    return groups
