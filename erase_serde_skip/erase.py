from __future__ import annotations

from typing import Callable, Iterator

from .errors import EraseError
from .model import KEY_VALUE, Field, MetadataBlock, MetadataEntry, Opaque, Record, TaggedUnion, TypeDefinition
from .parse import parse_metadata_entries
from .writer import render_entries


SERDE_NAMESPACE = "serde"
SKIP_SERIALIZING_IF = "skip_serializing_if"


def is_skip_serializing_if(entry: MetadataEntry) -> bool:
    return entry.kind == KEY_VALUE and entry.key == SKIP_SERIALIZING_IF


def filter_entries(entries: list[MetadataEntry]) -> list[MetadataEntry]:
    return [entry for entry in entries if not is_skip_serializing_if(entry)]


def rewrite_block(block: MetadataBlock) -> bool:
    """Filter one attribute in place; False means the block must be dropped.

    Blocks outside the serde namespace, and serde blocks whose arguments do
    not parse, are kept exactly as written.
    """
    if block.namespace != SERDE_NAMESPACE or not block.delimiter:
        return True
    try:
        entries = parse_metadata_entries(block.content)
    except EraseError:
        return True
    kept = filter_entries(entries)
    if not kept:
        return False
    if len(kept) != len(entries):
        block.content = render_entries(kept)
    return True


def retain_blocks(
    leading: str, blocks: list[MetadataBlock], keep: Callable[[MetadataBlock], bool]
) -> tuple[str, list[MetadataBlock]]:
    """Drop the blocks ``keep`` rejects, along with the whitespace after them.

    Comments that followed a dropped block move onto whatever precedes it,
    so the returned leading text may grow.
    """
    kept: list[MetadataBlock] = []
    for block in blocks:
        if keep(block):
            kept.append(block)
            continue
        comments = block.trailing.lstrip()
        if not comments:
            continue
        if kept:
            kept[-1].trailing += comments
        else:
            leading += comments
    return leading, kept


def strip_field(field: Field) -> None:
    field.leading, field.blocks = retain_blocks(field.leading, field.blocks, rewrite_block)


def iter_fields(definition: TypeDefinition) -> Iterator[Field]:
    if isinstance(definition, Record):
        yield from definition.fields.fields
    elif isinstance(definition, TaggedUnion):
        for case in definition.cases:
            yield from case.fields.fields
    elif isinstance(definition, Opaque):
        return


def erase_skip_serializing_if(definition: TypeDefinition) -> TypeDefinition:
    """Remove every ``skip_serializing_if`` from the field attributes of ``definition``."""
    for field in iter_fields(definition):
        strip_field(field)
    return definition
