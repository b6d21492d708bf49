from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .errors import syntax_error


OPEN_TO_CLOSE = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}


@dataclass(frozen=True)
class Token:
    kind: str
    start: int
    end: int
    value: str

    def is_punct(self, ch: str) -> bool:
        return self.kind == "punct" and self.value == ch

    def is_group(self, opener: str) -> bool:
        return self.kind == "group" and self.value[0] == opener

    def is_ident(self, name: str) -> bool:
        return self.kind == "ident" and self.value == name


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _limit(text: str, end: int | None) -> int:
    return len(text) if end is None else end


def _skip_block_comment(text: str, i: int, limit: int) -> int:
    start = i
    depth = 0
    while i < limit:
        if text.startswith("/*", i):
            depth += 1
            i += 2
        elif text.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    raise syntax_error(
        "E_EXPAND_COMMENT_UNTERMINATED",
        "block comment is not closed",
        "*/",
        "end of input",
        start,
    )


def skip_trivia(text: str, i: int, end: int | None = None) -> int:
    limit = _limit(text, end)
    while i < limit:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if text.startswith("//", i):
            nl = text.find("\n", i, limit)
            i = limit if nl == -1 else nl + 1
            continue
        if text.startswith("/*", i):
            i = _skip_block_comment(text, i, limit)
            continue
        break
    return min(i, limit)


def is_trivia(text: str, start: int, end: int) -> bool:
    return skip_trivia(text, start, end) >= end


def _skip_quoted(text: str, start: int, i: int, limit: int, quote: str) -> int:
    while i < limit:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    raise syntax_error(
        "E_EXPAND_LITERAL_UNTERMINATED",
        "literal is not closed",
        quote,
        "end of input",
        start,
    )


def _skip_raw(text: str, start: int, i: int, limit: int, hashes: int) -> int:
    terminator = '"' + "#" * hashes
    idx = text.find(terminator, i, limit)
    if idx == -1:
        raise syntax_error(
            "E_EXPAND_LITERAL_UNTERMINATED",
            "raw string is not closed",
            terminator,
            "end of input",
            start,
        )
    return idx + len(terminator)


def _skip_char_or_lifetime(text: str, i: int, limit: int) -> int:
    if i + 1 < limit and text[i + 1] == "\\":
        return _skip_quoted(text, i, i + 1, limit, "'")
    if i + 2 < limit and text[i + 2] == "'":
        return i + 3
    j = i + 1
    while j < limit and _is_ident_char(text[j]):
        j += 1
    return j


def skip_literal(text: str, i: int, end: int | None = None) -> int | None:
    """Return the index just past the literal starting at ``i``, or None.

    Lifetimes are consumed here as well, since they share the quote prefix
    with char literals.
    """
    limit = _limit(text, end)
    ch = text[i]
    if ch == '"':
        return _skip_quoted(text, i, i + 1, limit, '"')
    if ch == "'":
        return _skip_char_or_lifetime(text, i, limit)
    if ch not in "brc" or (i > 0 and _is_ident_char(text[i - 1])):
        return None
    j = i + 1
    raw = ch == "r"
    if ch in "bc" and j < limit and text[j] == "r":
        raw = True
        j += 1
    if raw:
        hashes = 0
        while j < limit and text[j] == "#":
            hashes += 1
            j += 1
        if j < limit and text[j] == '"':
            return _skip_raw(text, i, j + 1, limit, hashes)
        return None
    if j < limit and text[j] == '"':
        return _skip_quoted(text, i, j + 1, limit, '"')
    if ch == "b" and j < limit and text[j] == "'":
        return _skip_quoted(text, i, j + 1, limit, "'")
    return None


def find_close(text: str, i: int, end: int | None = None) -> int:
    """Index of the delimiter closing the group opened at ``i``."""
    limit = _limit(text, end)
    stack = [OPEN_TO_CLOSE[text[i]]]
    j = i + 1
    while j < limit:
        nxt = skip_trivia(text, j, limit)
        if nxt != j:
            j = nxt
            continue
        lit = skip_literal(text, j, limit)
        if lit is not None:
            j = lit
            continue
        ch = text[j]
        if ch in OPEN_TO_CLOSE:
            stack.append(OPEN_TO_CLOSE[ch])
        elif ch in CLOSERS:
            if ch != stack[-1]:
                raise syntax_error(
                    "E_EXPAND_DELIMITER_MISMATCH",
                    "closing delimiter does not match",
                    stack[-1],
                    ch,
                    j,
                )
            stack.pop()
            if not stack:
                return j
        j += 1
    raise syntax_error(
        "E_EXPAND_DELIMITER_UNCLOSED",
        "delimiter is not closed",
        stack[-1],
        "end of input",
        i,
    )


def iter_tokens(text: str, start: int, end: int | None = None) -> Iterator[Token]:
    """Yield top-level tokens in ``text[start:end]``; groups come back whole."""
    limit = _limit(text, end)
    i = start
    while True:
        i = skip_trivia(text, i, limit)
        if i >= limit:
            return
        ch = text[i]
        lit = skip_literal(text, i, limit)
        if lit is not None:
            yield Token("literal", i, lit, text[i:lit])
            i = lit
            continue
        if ch in OPEN_TO_CLOSE:
            close = find_close(text, i, limit)
            yield Token("group", i, close + 1, text[i : close + 1])
            i = close + 1
            continue
        if ch in CLOSERS:
            raise syntax_error(
                "E_EXPAND_DELIMITER_UNEXPECTED",
                "unexpected closing delimiter",
                "balanced delimiters",
                ch,
                i,
            )
        if _is_ident_start(ch):
            j = i + 1
            if ch == "r" and text.startswith("#", j) and j + 1 < limit and _is_ident_start(text[j + 1]):
                j += 1
            while j < limit and _is_ident_char(text[j]):
                j += 1
            yield Token("ident", i, j, text[i:j])
            i = j
            continue
        if ch.isdigit():
            j = i + 1
            while j < limit and (_is_ident_char(text[j]) or text[j] == "."):
                j += 1
            yield Token("literal", i, j, text[i:j])
            i = j
            continue
        yield Token("punct", i, i + 1, ch)
        i += 1


def next_token(text: str, start: int, end: int | None = None) -> Token | None:
    return next(iter_tokens(text, start, end), None)


def _closes_angle(token: Token, prev: Token | None) -> bool:
    if not token.is_punct(">"):
        return False
    return not (prev is not None and prev.is_punct("-") and prev.end == token.start)


def split_top_level(text: str, start: int, end: int, track_angles: bool = False) -> list[tuple[int, int]]:
    """Split ``text[start:end]`` at commas that sit outside every group."""
    parts: list[tuple[int, int]] = []
    seg_start = start
    depth = 0
    prev: Token | None = None
    for tok in iter_tokens(text, start, end):
        if track_angles:
            if tok.is_punct("<"):
                depth += 1
            elif depth > 0 and _closes_angle(tok, prev):
                depth -= 1
        if tok.is_punct(",") and depth == 0:
            parts.append((seg_start, tok.start))
            seg_start = tok.end
        prev = tok
    parts.append((seg_start, end))
    return parts


def skip_angles(text: str, i: int, end: int | None = None) -> int:
    """Index just past the ``>`` matching the ``<`` at ``i``."""
    depth = 0
    prev: Token | None = None
    for tok in iter_tokens(text, i, end):
        if tok.is_punct("<"):
            depth += 1
        elif _closes_angle(tok, prev):
            depth -= 1
            if depth == 0:
                return tok.end
        prev = tok
    raise syntax_error(
        "E_EXPAND_GENERICS_UNCLOSED",
        "generic parameter list is not closed",
        ">",
        "end of input",
        i,
    )


def find_top_level(text: str, i: int, end: int | None, stops: tuple[str, ...]) -> Token | None:
    """First token outside angle brackets matching one of ``stops``.

    ``stops`` holds punctuation characters or group openers.
    """
    depth = 0
    prev: Token | None = None
    for tok in iter_tokens(text, i, end):
        if tok.is_punct("<"):
            depth += 1
        elif depth > 0 and _closes_angle(tok, prev):
            depth -= 1
        elif depth == 0:
            if tok.kind == "punct" and tok.value in stops:
                return tok
            if tok.kind == "group" and tok.value[0] in stops:
                return tok
        prev = tok
    return None


def _is_path_sep(tokens: list[Token], idx: int) -> bool:
    return (
        idx + 1 < len(tokens)
        and tokens[idx].is_punct(":")
        and tokens[idx + 1].is_punct(":")
        and tokens[idx].end == tokens[idx + 1].start
    )


def read_path(tokens: list[Token], start: int = 0) -> tuple[str, int]:
    """Read ``a``, ``a::b`` or ``::a`` from ``tokens``; returns ("", start) on no match."""
    idx = start
    parts: list[str] = []
    if _is_path_sep(tokens, idx):
        parts.append("::")
        idx += 2
    while idx < len(tokens) and tokens[idx].kind == "ident":
        parts.append(tokens[idx].value)
        idx += 1
        if _is_path_sep(tokens, idx) and idx + 2 < len(tokens) and tokens[idx + 2].kind == "ident":
            parts.append("::")
            idx += 2
            continue
        break
    if not parts or parts[-1] == "::":
        return "", start
    return "".join(parts), idx
