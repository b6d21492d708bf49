from __future__ import annotations

from .model import (
    EMPTY,
    Case,
    Field,
    FieldSet,
    MetadataBlock,
    MetadataEntry,
    Opaque,
    Record,
    TaggedUnion,
    TypeDefinition,
)


def render_entries(entries: list[MetadataEntry]) -> str:
    return ", ".join(entry.text for entry in entries)


def _write_blocks(blocks: list[MetadataBlock]) -> str:
    return "".join(block.render() for block in blocks)


def write_field(field: Field) -> str:
    return f"{field.leading}{_write_blocks(field.blocks)}{field.rest}{field.separator}"


def write_field_set(fields: FieldSet) -> str:
    if fields.kind == EMPTY:
        return ""
    inner = "".join(write_field(field) for field in fields.fields)
    return f"{fields.open}{inner}{fields.close}"


def _write_case(case: Case) -> str:
    return f"{case.head}{write_field_set(case.fields)}{case.tail}{case.separator}"


def write_definition(definition: TypeDefinition) -> str:
    if isinstance(definition, Record):
        return "".join(
            [
                definition.leading,
                _write_blocks(definition.attrs),
                definition.head,
                write_field_set(definition.fields),
                definition.tail,
            ]
        )
    if isinstance(definition, TaggedUnion):
        cases = "".join(_write_case(case) for case in definition.cases)
        return "".join(
            [
                definition.leading,
                _write_blocks(definition.attrs),
                definition.head,
                definition.open,
                cases,
                definition.close,
                definition.tail,
            ]
        )
    if isinstance(definition, Opaque):
        return f"{definition.leading}{_write_blocks(definition.attrs)}{definition.text}"
    raise TypeError("DEFINITION_TYPE_INVALID")
