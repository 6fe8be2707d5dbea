"""Split a multi-statement SQL string on top-level semicolons."""

from __future__ import annotations

import enum


class _LexState(enum.Enum):
    NORMAL = "normal"
    SINGLE_QUOTE = "single_quote"
    DOUBLE_QUOTE = "double_quote"
    BACKTICK = "backtick"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"


_OPENING_QUOTE = {
    "'": _LexState.SINGLE_QUOTE,
    '"': _LexState.DOUBLE_QUOTE,
    "`": _LexState.BACKTICK,
}

_CLOSING_QUOTE = {
    _LexState.SINGLE_QUOTE: "'",
    _LexState.DOUBLE_QUOTE: '"',
    _LexState.BACKTICK: "`",
}


def split_statements(sql: str) -> list[str]:
    """Split ``sql`` into trimmed, non-empty statements.

    A ``;`` terminates a statement only outside quotes and comments. Inside
    an open quote a backslash escapes the following character. Fragments
    holding nothing but whitespace and comments are dropped. Never raises:
    unterminated quotes or comments swallow the rest of the input into the
    current statement.
    """
    statements: list[str] = []
    state = _LexState.NORMAL
    start = 0
    has_code = False
    i = 0
    n = len(sql)

    while i < n:
        char = sql[i]
        nxt = sql[i + 1] if i + 1 < n else ""

        if state is _LexState.NORMAL:
            if char == ";":
                if has_code:
                    statements.append(sql[start:i].strip())
                start = i + 1
                has_code = False
            elif char == "-" and nxt == "-":
                state = _LexState.LINE_COMMENT
                i += 1
            elif char == "/" and nxt == "*":
                state = _LexState.BLOCK_COMMENT
                i += 1
            elif char in _OPENING_QUOTE:
                state = _OPENING_QUOTE[char]
                has_code = True
            elif not char.isspace():
                has_code = True
        elif state is _LexState.LINE_COMMENT:
            if char == "\n":
                state = _LexState.NORMAL
        elif state is _LexState.BLOCK_COMMENT:
            if char == "*" and nxt == "/":
                state = _LexState.NORMAL
                i += 1
        elif char == "\\":
            i += 1  # escaped character never closes the quote
        elif char == _CLOSING_QUOTE[state]:
            state = _LexState.NORMAL

        i += 1

    if has_code:
        statements.append(sql[start:].strip())

    return statements
