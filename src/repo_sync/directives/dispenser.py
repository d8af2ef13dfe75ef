"""Cursor-based access to the tokens of one directive."""

from __future__ import annotations

from typing import TYPE_CHECKING

from repo_sync.errors import MissingArgumentError, ParseError

if TYPE_CHECKING:
    from repo_sync.directives.lexer import Token


class Dispenser:
    """Hands out tokens one at a time to a directive's setup code.

    The cursor starts before the first token. ``next`` moves to the next
    token regardless of lines, ``next_arg`` only when the next token is on
    the same line, and ``next_block`` walks the lines of a ``{ ... }`` block
    that opens on the current line.
    """

    def __init__(self, tokens: list[Token], filename: str = "") -> None:
        self._tokens = list(tokens)
        self._filename = filename
        self._cursor = -1
        self._nesting = 0

    def next(self) -> bool:
        """Advance to the next token. Returns False at the end."""
        if self._cursor < len(self._tokens) - 1:
            self._cursor += 1
            return True
        return False

    def next_arg(self) -> bool:
        """Advance to the next token only if it is on the same line."""
        if self._cursor < 0:
            self._cursor += 1
            return bool(self._tokens)
        if self._cursor >= len(self._tokens) - 1:
            return False
        current = self._tokens[self._cursor]
        following = self._tokens[self._cursor + 1]
        if current.file == following.file and self._end_line(self._cursor) == following.line:
            self._cursor += 1
            return True
        return False

    def next_block(self) -> bool:
        """Advance to the next line inside a block.

        Returns False when the block closes, or when there is no block
        opening on the current line.
        """
        if self._nesting > 0:
            if not self.next():
                return False
            if self.val() == "}":
                self._nesting -= 1
                return False
            return True
        if not self.next_arg():
            return False
        if self.val() != "{":
            self._cursor -= 1
            return False
        self.next()
        if self.val() == "}":
            # empty block
            return False
        self._nesting += 1
        return True

    def val(self) -> str:
        """Text of the token under the cursor, or an empty string."""
        if 0 <= self._cursor < len(self._tokens):
            return self._tokens[self._cursor].text
        return ""

    def line(self) -> int:
        if 0 <= self._cursor < len(self._tokens):
            return self._tokens[self._cursor].line
        return 0

    def remaining_args(self) -> list[str]:
        """Collect the rest of the arguments on this line, stopping before ``{``."""
        args: list[str] = []
        while self.next_arg():
            if self.val() == "{":
                self._cursor -= 1
                break
            args.append(self.val())
        return args

    def arg_err(self) -> MissingArgumentError:
        """Error for a missing or unexpected argument at the cursor."""
        if self.val() == "{":
            return MissingArgumentError("Unexpected token '{', expecting argument", self._filename, self.line())
        return MissingArgumentError(
            f"Wrong argument count or unexpected line ending after '{self.val()}'",
            self._filename,
            self.line(),
        )

    def errf(self, message: str, error: type[ParseError] = ParseError) -> ParseError:
        """Error of the given type located at the cursor."""
        return error(message, self._filename, self.line())

    def _end_line(self, index: int) -> int:
        token = self._tokens[index]
        return token.line + token.text.count("\n")
