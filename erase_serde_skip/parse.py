from __future__ import annotations

from .errors import DefinitionSyntaxError, MetadataSyntaxError, syntax_error
from .model import (
    EMPTY,
    FLAG,
    KEY_VALUE,
    LIST,
    NAMED,
    POSITIONAL,
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
from .scan import (
    Token,
    find_top_level,
    is_trivia,
    iter_tokens,
    next_token,
    read_path,
    skip_angles,
    skip_trivia,
    split_top_level,
)


ITEM_KEYWORDS = {"struct", "enum"}


def parse_attribute(
    text: str, i: int, end: int | None = None, pointer: tuple[str, ...] = ()
) -> tuple[MetadataBlock, int]:
    """Parse the outer attribute whose ``#`` sits at ``i``.

    Returns the block (with empty ``trailing``) and the index just past ``]``.
    """
    limit = len(text) if end is None else end
    bracket = next_token(text, i + 1, limit)
    if bracket is None or not bracket.is_group("["):
        got = bracket.value if bracket is not None else "end of input"
        raise syntax_error(
            "E_EXPAND_ATTRIBUTE_INVALID",
            "attribute must be written #[...]",
            "#[",
            got,
            i,
            *pointer,
        )
    tokens = list(iter_tokens(text, bracket.start + 1, bracket.end - 1))
    namespace, idx = read_path(tokens)
    if not namespace:
        raise syntax_error(
            "E_EXPAND_ATTRIBUTE_PATH_MISSING",
            "attribute must start with a path",
            "path",
            bracket.value,
            i,
            *pointer,
        )
    if idx == len(tokens) - 1 and tokens[idx].kind == "group":
        args = tokens[idx]
        block = MetadataBlock(
            namespace=namespace,
            head=text[i : args.start + 1],
            content=text[args.start + 1 : args.end - 1],
            tail=text[args.end - 1 : bracket.end],
            delimiter=args.value[0],
        )
        return block, bracket.end
    return MetadataBlock(namespace=namespace, head=text[i : bracket.end]), bracket.end


def _parse_attrs(
    text: str, i: int, end: int, pointer: tuple[str, ...]
) -> tuple[list[MetadataBlock], int]:
    blocks: list[MetadataBlock] = []
    while i < end and text[i] == "#":
        block, after = parse_attribute(text, i, end, pointer)
        nxt = skip_trivia(text, after, end)
        block.trailing = text[after:nxt]
        blocks.append(block)
        i = nxt
    return blocks, i


OPERANDS = ("ident", "literal", "group")
JOINED_EQ = "=!<>"


def _bare_eq(tokens: list[Token], idx: int) -> bool:
    # `=` that is not part of `==`, `!=`, `<=`, `>=` or `=>`
    prev = tokens[idx - 1] if idx > 0 else None
    nxt = tokens[idx + 1] if idx + 1 < len(tokens) else None
    if prev is not None and prev.kind == "punct" and prev.end == tokens[idx].start and prev.value in JOINED_EQ:
        return False
    if nxt is not None and nxt.kind == "punct" and nxt.start == tokens[idx].end and nxt.value in JOINED_EQ:
        return False
    return True


def _juxtaposed(prev: Token, tok: Token) -> bool:
    # two operands with no operator between them
    if prev.kind not in OPERANDS or tok.kind not in OPERANDS:
        return False
    if tok.is_ident("as") or (prev.is_ident("as") and tok.kind == "ident"):
        return False
    if prev.kind == "ident":
        return tok.kind != "group"
    if prev.kind == "group":
        # call or index on a parenthesised or indexed expression
        return not (tok.is_group("(") or tok.is_group("["))
    return True


def _malformed_value(tokens: list[Token]) -> bool:
    if not tokens or tokens[0].is_punct("="):
        return True
    for idx, tok in enumerate(tokens):
        if tok.is_punct(";"):
            return True
        if tok.is_punct("=") and _bare_eq(tokens, idx):
            return True
        if idx and _juxtaposed(tokens[idx - 1], tok):
            return True
    return False


def _parse_entry(content: str, start: int, end: int) -> MetadataEntry:
    tokens = list(iter_tokens(content, start, end))
    if not tokens:
        raise MetadataSyntaxError("empty entry")
    key, idx = read_path(tokens)
    if not key:
        raise MetadataSyntaxError(f"entry must start with a path: {content[start:end].strip()}")
    source = content[tokens[0].start : tokens[-1].end]
    if idx == len(tokens):
        return MetadataEntry(kind=FLAG, key=key, value=None, text=source)
    nxt = tokens[idx]
    if nxt.kind == "group" and idx == len(tokens) - 1:
        return MetadataEntry(kind=LIST, key=key, value=nxt.value[1:-1], text=source)
    if nxt.is_punct("=") and idx + 1 < len(tokens):
        after = tokens[idx + 1]
        if not _malformed_value(tokens[idx + 1 :]):
            value = content[after.start : tokens[-1].end]
            return MetadataEntry(kind=KEY_VALUE, key=key, value=value, text=source)
    raise MetadataSyntaxError(f"unexpected token after {key}: {nxt.value}")


def parse_metadata_entries(content: str) -> list[MetadataEntry]:
    """Split an attribute argument list into entries.

    Raises MetadataSyntaxError when the list is not a comma separated
    sequence of ``path``, ``path(...)`` or ``path = value`` items.
    """
    try:
        segments = split_top_level(content, 0, len(content))
        if is_trivia(content, *segments[-1]):
            segments = segments[:-1]
        return [_parse_entry(content, start, end) for start, end in segments]
    except DefinitionSyntaxError as exc:
        raise MetadataSyntaxError(str(exc)) from exc


def _parse_field(text: str, start: int, end: int, pointer: tuple[str, ...]) -> Field:
    i = skip_trivia(text, start, end)
    leading = text[start:i]
    blocks, i = _parse_attrs(text, i, end, pointer)
    if i >= end:
        raise syntax_error(
            "E_EXPAND_FIELD_MISSING",
            "attribute is not followed by a field",
            "field",
            "end of field",
            i,
            *pointer,
        )
    return Field(leading=leading, blocks=blocks, rest=text[i:end])


def _parse_field_set(text: str, group: Token, pointer: tuple[str, ...]) -> FieldSet:
    kind = NAMED if group.is_group("{") else POSITIONAL
    inner_start, inner_end = group.start + 1, group.end - 1
    segments = split_top_level(text, inner_start, inner_end, track_angles=True)
    fields: list[Field] = []
    close_start = inner_end
    for index, (seg_start, seg_end) in enumerate(segments):
        last = index == len(segments) - 1
        if is_trivia(text, seg_start, seg_end):
            if last:
                close_start = seg_start
                break
            raise syntax_error(
                "E_EXPAND_FIELD_EMPTY",
                "empty field between separators",
                "field",
                ",",
                seg_end,
                *pointer,
                str(index),
            )
        field = _parse_field(text, seg_start, seg_end, pointer + (str(index),))
        field.separator = "" if last else ","
        fields.append(field)
    return FieldSet(
        kind=kind,
        open=group.value[0],
        fields=fields,
        close=text[close_start : group.end],
    )


def _parse_case(text: str, start: int, end: int, pointer: tuple[str, ...]) -> Case:
    i = skip_trivia(text, start, end)
    _, i = _parse_attrs(text, i, end, pointer)
    name_tok = next_token(text, i, end)
    if name_tok is None or name_tok.kind != "ident":
        raise syntax_error(
            "E_EXPAND_CASE_NAME_MISSING",
            "enum variant must start with a name",
            "identifier",
            name_tok.value if name_tok is not None else "end of variant",
            i,
            *pointer,
        )
    body = next_token(text, name_tok.end, end)
    if body is not None and (body.is_group("{") or body.is_group("(")):
        fields = _parse_field_set(text, body, pointer + ("fields",))
        head = text[start : body.start]
        after = body.end
    else:
        fields = FieldSet(kind=EMPTY)
        head = text[start : name_tok.end]
        after = name_tok.end
    rest = next_token(text, after, end)
    if rest is not None:
        if not rest.is_punct("=") or next_token(text, rest.end, end) is None:
            raise syntax_error(
                "E_EXPAND_CASE_TRAILING_TOKENS",
                "unexpected tokens after enum variant",
                "= discriminant",
                rest.value,
                rest.start,
                *pointer,
            )
    return Case(name=name_tok.value, head=head, fields=fields, tail=text[after:end])


def _parse_cases(text: str, group: Token) -> tuple[list[Case], str]:
    inner_start, inner_end = group.start + 1, group.end - 1
    segments = split_top_level(text, inner_start, inner_end)
    cases: list[Case] = []
    close_start = inner_end
    for index, (seg_start, seg_end) in enumerate(segments):
        last = index == len(segments) - 1
        if is_trivia(text, seg_start, seg_end):
            if last:
                close_start = seg_start
                break
            raise syntax_error(
                "E_EXPAND_CASE_EMPTY",
                "empty variant between separators",
                "variant",
                ",",
                seg_end,
                "cases",
                str(index),
            )
        case = _parse_case(text, seg_start, seg_end, ("cases", str(index)))
        case.separator = "" if last else ","
        cases.append(case)
    return cases, text[close_start : group.end]


def _expect_end(text: str, i: int) -> None:
    tok = next_token(text, i)
    if tok is not None:
        raise syntax_error(
            "E_EXPAND_TRAILING_TOKENS",
            "unexpected tokens after type definition",
            "end of input",
            tok.value,
            tok.start,
        )


def _missing_body(keyword: str, tok: Token | None, offset: int) -> DefinitionSyntaxError:
    expected = "{" if keyword == "enum" else "{, ( or ;"
    got = tok.value if tok is not None else "end of input"
    return syntax_error(
        "E_EXPAND_BODY_MISSING",
        f"{keyword} body is missing",
        expected,
        got,
        tok.start if tok is not None else offset,
    )


def _parse_struct(
    text: str, leading: str, attrs: list[MetadataBlock], name: str, head_start: int, i: int
) -> Record:
    body = next_token(text, i)
    if body is not None and body.is_ident("where"):
        body = find_top_level(text, body.end, None, ("{", ";"))
    if body is None:
        raise _missing_body("struct", body, len(text))
    if body.is_group("{"):
        _expect_end(text, body.end)
        fields = _parse_field_set(text, body, ("fields",))
    elif body.is_group("("):
        semi = find_top_level(text, body.end, None, (";",))
        if semi is None:
            raise syntax_error(
                "E_EXPAND_SEMICOLON_MISSING",
                "tuple struct must end with ;",
                ";",
                "end of input",
                body.end,
            )
        _expect_end(text, semi.end)
        fields = _parse_field_set(text, body, ("fields",))
    elif body.is_punct(";"):
        _expect_end(text, body.end)
        return Record(
            leading=leading,
            attrs=attrs,
            name=name,
            head=text[head_start : body.start],
            fields=FieldSet(kind=EMPTY),
            tail=text[body.start :],
        )
    else:
        raise _missing_body("struct", body, len(text))
    return Record(
        leading=leading,
        attrs=attrs,
        name=name,
        head=text[head_start : body.start],
        fields=fields,
        tail=text[body.end :],
    )


def _parse_enum(
    text: str, leading: str, attrs: list[MetadataBlock], name: str, head_start: int, i: int
) -> TaggedUnion:
    body = next_token(text, i)
    if body is not None and body.is_ident("where"):
        body = find_top_level(text, body.end, None, ("{",))
    if body is None or not body.is_group("{"):
        raise _missing_body("enum", body, len(text))
    _expect_end(text, body.end)
    cases, close = _parse_cases(text, body)
    return TaggedUnion(
        leading=leading,
        attrs=attrs,
        name=name,
        head=text[head_start : body.start],
        open=body.value[0],
        cases=cases,
        close=close,
        tail=text[body.end :],
    )


def parse_definition(text: str) -> TypeDefinition:
    """Parse one struct or enum item; any other item comes back as Opaque."""
    i = skip_trivia(text, 0)
    leading = text[:i]
    attrs, i = _parse_attrs(text, i, len(text), ("attrs",))
    head_start = i
    tok = next_token(text, i)
    if tok is not None and tok.is_ident("pub"):
        vis = next_token(text, tok.end)
        tok = next_token(text, vis.end) if vis is not None and vis.is_group("(") else vis
    if tok is None:
        raise syntax_error(
            "E_EXPAND_ITEM_EMPTY",
            "no item follows the attributes",
            "item",
            "end of input",
            len(text),
        )
    if tok.kind != "ident" or tok.value not in ITEM_KEYWORDS:
        return Opaque(leading=leading, attrs=attrs, keyword=tok.value, text=text[head_start:])

    name_tok = next_token(text, tok.end)
    if name_tok is None or name_tok.kind != "ident":
        raise syntax_error(
            "E_EXPAND_ITEM_NAME_MISSING",
            f"{tok.value} must be named",
            "identifier",
            name_tok.value if name_tok is not None else "end of input",
            tok.end,
        )
    i = name_tok.end
    generics = next_token(text, i)
    if generics is not None and generics.is_punct("<"):
        i = skip_angles(text, generics.start)
    if tok.value == "enum":
        return _parse_enum(text, leading, attrs, name_tok.value, head_start, i)
    return _parse_struct(text, leading, attrs, name_tok.value, head_start, i)
