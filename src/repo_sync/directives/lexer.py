"""Tokenizer for the block-structured directive file."""

from __future__ import annotations

from dataclasses import dataclass

from repo_sync.errors import ParseError


@dataclass(frozen=True)
class Token:
    """A single word of the directive file with its location."""

    file: str
    line: int
    text: str


def tokenize(text: str, filename: str = "") -> list[Token]:
    """Split directive file contents into tokens.

    Tokens are separated by whitespace. Double quotes group a token that may
    contain whitespace (``\\"`` escapes a quote), ``#`` starts a comment that
    runs to the end of the line, and braces are tokens of their own when they
    stand alone.

    Raises:
        ParseError: If a quoted string is not terminated.
    """
    tokens: list[Token] = []
    line = 1
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch == "\n":
            line += 1
            i += 1
            continue

        if ch.isspace():
            i += 1
            continue

        if ch == "#":
            while i < n and text[i] != "\n":
                i += 1
            continue

        start_line = line
        if ch == '"':
            i += 1
            chars: list[str] = []
            while i < n and text[i] != '"':
                if text[i] == "\\" and i + 1 < n and text[i + 1] == '"':
                    chars.append('"')
                    i += 2
                    continue
                if text[i] == "\n":
                    line += 1
                chars.append(text[i])
                i += 1
            if i >= n:
                raise ParseError("unterminated quoted string", filename, start_line)
            i += 1  # closing quote
            tokens.append(Token(filename, start_line, "".join(chars)))
            continue

        start = i
        while i < n and not text[i].isspace():
            i += 1
        tokens.append(Token(filename, start_line, text[start:i]))

    return tokens
