from __future__ import annotations

import logging

import pytest

from forgegen.errors import InvalidField, InvalidIdentifier
from forgegen.fields import FieldFlag, FieldSpec, column_type, parse_fields


@pytest.mark.parametrize(
    "descriptor, expected",
    [
        ("title:string", "string_null"),
        ("title:string!", "string"),
        ("email:string^", "string_uniq"),
        ("body:text", "text_null"),
        ("views:int!", "integer"),
        ("published:bool", "boolean_null"),
        ("price:decimal_len!:10,2", "decimal_len(10,2)"),
        ("code:string_len^:8", "string_len_uniq(8)"),
        ("tags:array:string", "array_null(String)"),
        ("scores:array!:big_int", "array(BigInt)"),
        ("labels:array^:string", "array_uniq(String)"),
        ("author:references", "references"),
        ("editor:references?", "references_null"),
    ],
)
def test_column_type_for_descriptor(descriptor, expected):
    assert column_type(FieldSpec.parse(descriptor)) == expected


def test_modifier_flags():
    nullable = FieldSpec.parse("title:string")
    required = FieldSpec.parse("title:string!")
    unique = FieldSpec.parse("email:string^")

    assert nullable.flags == frozenset({FieldFlag.NULLABLE})
    assert nullable.nullable and not nullable.unique
    assert required.flags == frozenset()
    assert not required.nullable
    assert unique.unique and unique.indexed and not unique.nullable


def test_reference_fields():
    author = FieldSpec.parse("author:references")
    assert author.is_reference
    assert author.indexed
    assert author.column == "author_id"
    assert author.table == "authors"

    owner = FieldSpec.parse("owner:references:creator_id")
    assert owner.column == "creator_id"
    assert owner.table == "owners"

    assert FieldSpec.parse("title:string").table is None


def test_parameter_count_is_checked():
    with pytest.raises(InvalidField) as excinfo:
        FieldSpec.parse("price:decimal_len:10")
    assert "requires specifying 2 parameters, but only 1 were given" in str(excinfo.value)


@pytest.mark.parametrize(
    "descriptor",
    ["title", "title:", ":string", "title:bogus", "author:references:a,b", "author:referencesx"],
)
def test_invalid_descriptors(descriptor):
    with pytest.raises(InvalidField):
        FieldSpec.parse(descriptor)


def test_field_names_must_be_identifiers():
    with pytest.raises(InvalidIdentifier):
        FieldSpec.parse("first name:string")


def test_parse_fields_drops_timestamps(caplog):
    with caplog.at_level(logging.WARNING, logger="forgegen.fields"):
        fields = parse_fields(["title:string", "created_at:ts", "updated_at:tstz", "body:text"])

    assert [spec.name for spec in fields] == ["title", "body"]
    assert "created_at" in caplog.text
    assert "updated_at" in caplog.text


def test_parse_fields_accepts_specs():
    spec = FieldSpec(name="title", type="string")
    assert parse_fields([spec, "body:text"])[0] is spec
