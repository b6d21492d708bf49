from __future__ import annotations

from typing import Iterable

from .erase import erase_skip_serializing_if, retain_blocks
from .errors import DefinitionSyntaxError, syntax_error
from .model import TypeDefinition
from .parse import parse_definition
from .scan import find_top_level, iter_tokens, next_token, read_path
from .writer import write_definition


MARKER_PATHS = (
    "erase_skip_serializing_if",
    "erase_serde_skip::erase_skip_serializing_if",
)


def strip_marker(definition: TypeDefinition, markers: Iterable[str] = MARKER_PATHS) -> bool:
    """Consume the marker attribute; True when one was present."""
    names = set(markers)
    before = len(definition.attrs)
    definition.leading, definition.attrs = retain_blocks(
        definition.leading,
        definition.attrs,
        lambda block: block.namespace not in names,
    )
    return len(definition.attrs) != before


def expand(text: str, markers: Iterable[str] = MARKER_PATHS) -> str:
    definition = parse_definition(text)
    strip_marker(definition, markers)
    erase_skip_serializing_if(definition)
    return write_definition(definition)


def _item_end(text: str, start: int, end: int) -> int:
    stop = find_top_level(text, start, end, (";", "{"))
    if stop is None:
        raise syntax_error(
            "E_EXPAND_ITEM_UNTERMINATED",
            "marked item has no body",
            "{ or ;",
            "end of input",
            start,
        )
    return stop.end


def _collect_marked(text: str, start: int, end: int, names: set[str], spans: list[tuple[int, int]]) -> None:
    i = start
    while True:
        tok = next_token(text, i, end)
        if tok is None:
            return
        if tok.is_punct("#"):
            bracket = next_token(text, tok.end, end)
            if bracket is not None and bracket.is_group("["):
                path, _ = read_path(list(iter_tokens(text, bracket.start + 1, bracket.end - 1)))
                if path in names:
                    stop = _item_end(text, bracket.end, end)
                    spans.append((tok.start, stop))
                    i = stop
                else:
                    i = bracket.end
                continue
        if tok.is_group("{"):
            _collect_marked(text, tok.start + 1, tok.end - 1, names, spans)
        i = tok.end


def find_marked_items(text: str, markers: Iterable[str] = MARKER_PATHS) -> list[tuple[int, int]]:
    """Spans of every item carrying a marker, from the marker to the item's end."""
    spans: list[tuple[int, int]] = []
    _collect_marked(text, 0, len(text), set(markers), spans)
    return spans


def rewrite_source(text: str, markers: Iterable[str] = MARKER_PATHS) -> tuple[str, int]:
    """Expand every marked item in a source file; returns the new text and item count."""
    markers = tuple(markers)
    chunks: list[str] = []
    pos = 0
    spans = find_marked_items(text, markers)
    for start, stop in spans:
        chunks.append(text[pos:start])
        try:
            chunks.append(expand(text[start:stop], markers))
        except DefinitionSyntaxError as exc:
            raise exc.shifted(start) from exc
        pos = stop
    chunks.append(text[pos:])
    return "".join(chunks), len(spans)


__all__ = [
    "MARKER_PATHS",
    "expand",
    "find_marked_items",
    "rewrite_source",
    "strip_marker",
]
