from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


NAMED = "named"
POSITIONAL = "positional"
EMPTY = "empty"

FLAG = "flag"
KEY_VALUE = "key_value"
LIST = "list"


@dataclass(frozen=True)
class MetadataEntry:
    kind: str
    key: str
    value: str | None
    text: str


@dataclass
class MetadataBlock:
    """One ``#[...]`` attribute.

    ``head`` runs from ``#`` through the opening delimiter of the argument
    list, ``content`` is the raw argument text and ``tail`` the closing
    delimiter through ``]``. Attributes without an argument list keep their
    whole text in ``head`` and an empty ``delimiter``. ``trailing`` is the
    trivia between ``]`` and the next token.
    """

    namespace: str
    head: str
    content: str = ""
    tail: str = ""
    delimiter: str = ""
    trailing: str = ""

    def render(self) -> str:
        return f"{self.head}{self.content}{self.tail}{self.trailing}"


@dataclass
class Field:
    leading: str
    blocks: list[MetadataBlock]
    rest: str
    separator: str = ""


@dataclass
class FieldSet:
    kind: str
    open: str = ""
    fields: list[Field] = field(default_factory=list)
    close: str = ""


@dataclass
class Case:
    name: str
    head: str
    fields: FieldSet
    tail: str
    separator: str = ""


@dataclass
class Record:
    leading: str
    attrs: list[MetadataBlock]
    name: str
    head: str
    fields: FieldSet
    tail: str


@dataclass
class TaggedUnion:
    leading: str
    attrs: list[MetadataBlock]
    name: str
    head: str
    open: str
    cases: list[Case]
    close: str
    tail: str


@dataclass
class Opaque:
    leading: str
    attrs: list[MetadataBlock]
    keyword: str
    text: str


TypeDefinition = Union[Record, TaggedUnion, Opaque]
