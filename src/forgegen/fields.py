"""Field descriptors passed to model and migration generators.

Fields arrive from the command line as ``name:type`` pairs, for example
``title:string!`` or ``author:references``. The type grammar is:

``<type>``
    A nullable column of ``type``.
``<type>!``
    A column that must not be null.
``<type>^``
    A unique, not null column.
``<type>:<p1>[,<p2>]``
    A parameterised type such as ``decimal_len:10,2`` or ``array:string``.
``references`` / ``references?`` / ``references:<column>``
    A foreign key to the entity named by the field, optionally nullable or
    stored in a custom column.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, NamedTuple, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidField
from .naming import pluralize, resolve, to_pascal_case, to_snake_case

__all__ = [
    "COLUMN_TYPES",
    "ColumnType",
    "FieldFlag",
    "FieldSpec",
    "IGNORE_FIELDS",
    "column_type",
    "parse_fields",
]


LOGGER = logging.getLogger(__name__)

# Timestamps are added to every generated model automatically.
IGNORE_FIELDS = ("created_at", "updated_at", "create_at", "update_at")


class ColumnType(NamedTuple):
    """Column helper names for one field type and the parameters it takes."""

    nullable: str
    required: str
    unique: str
    arity: int = 0
    # Parameters name an element kind, e.g. `array:string` becomes `array_null(String)`.
    kind_params: bool = False


COLUMN_TYPES: Mapping[str, ColumnType] = MappingProxyType(
    {
        "string": ColumnType("string_null", "string", "string_uniq"),
        "string_len": ColumnType("string_len_null", "string_len", "string_len_uniq", 1),
        "text": ColumnType("text_null", "text", "text_uniq"),
        "int": ColumnType("integer_null", "integer", "integer_uniq"),
        "big_int": ColumnType("big_integer_null", "big_integer", "big_integer_uniq"),
        "small_int": ColumnType("small_integer_null", "small_integer", "small_integer_uniq"),
        "float": ColumnType("float_null", "float", "float_uniq"),
        "double": ColumnType("double_null", "double", "double_uniq"),
        "decimal": ColumnType("decimal_null", "decimal", "decimal_uniq"),
        "decimal_len": ColumnType("decimal_len_null", "decimal_len", "decimal_len_uniq", 2),
        "bool": ColumnType("boolean_null", "boolean", "boolean_uniq"),
        "date": ColumnType("date_null", "date", "date_uniq"),
        "ts": ColumnType("timestamp_null", "timestamp", "timestamp_uniq"),
        "tstz": ColumnType("timestamp_with_time_zone_null", "timestamp_with_time_zone", "timestamp_with_time_zone_uniq"),
        "uuid": ColumnType("uuid_null", "uuid", "uuid_uniq"),
        "json": ColumnType("json_null", "json", "json_uniq"),
        "jsonb": ColumnType("json_binary_null", "json_binary", "json_binary_uniq"),
        "blob": ColumnType("blob_null", "blob", "blob_uniq"),
        "array": ColumnType("array_null", "array", "array_uniq", 1, kind_params=True),
    }
)

REFERENCE_TYPE = "references"


class FieldFlag(str, Enum):
    """Modifiers attached to a :class:`FieldSpec`."""

    NULLABLE = "nullable"
    UNIQUE = "unique"
    INDEXED = "indexed"
    REFERENCE = "reference"


class FieldSpec(BaseModel):
    """A single named, typed field of a generated entity."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Field name as given by the user.")
    type: str = Field(..., description="Base type tag, e.g. 'string' or 'references'.")
    flags: FrozenSet[FieldFlag] = Field(default_factory=frozenset, description="Modifier flags.")
    params: Tuple[str, ...] = Field(default=(), description="Type parameters, e.g. ('10', '2').")
    reference_column: str | None = Field(None, description="Custom foreign key column for references.")

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        # resolve() raises InvalidIdentifier, a RuntimeError, which pydantic
        # lets propagate unchanged.
        return resolve(value).raw

    @classmethod
    def parse(cls, descriptor: str) -> FieldSpec:
        """Parse a ``name:type`` descriptor into a :class:`FieldSpec`."""

        name, sep, type_text = descriptor.strip().partition(":")
        if not sep or not name or not type_text:
            raise InvalidField(f"field `{descriptor}` must use the form name:type")

        base, _, param_text = type_text.partition(":")
        params = tuple(part.strip() for part in param_text.split(",") if part.strip())

        if base.startswith(REFERENCE_TYPE):
            return cls._parse_reference(name, base, params, descriptor)

        flags: set[FieldFlag] = set()
        if base.endswith("^"):
            flags.add(FieldFlag.UNIQUE)
            base = base[:-1]
        elif base.endswith("!"):
            base = base[:-1]
        else:
            flags.add(FieldFlag.NULLABLE)

        spec = cls(name=name, type=base, flags=frozenset(flags), params=params)
        column_type(spec)
        return spec

    @classmethod
    def _parse_reference(
        cls, name: str, base: str, params: tuple[str, ...], descriptor: str
    ) -> FieldSpec:
        flags = {FieldFlag.REFERENCE, FieldFlag.INDEXED}
        if base == f"{REFERENCE_TYPE}?":
            flags.add(FieldFlag.NULLABLE)
        elif base != REFERENCE_TYPE:
            raise InvalidField(f"field `{descriptor}` has an unrecognized reference type `{base}`")
        if len(params) > 1:
            raise InvalidField(
                f"type: `{REFERENCE_TYPE}` accepts at most one custom column, but {len(params)} were "
                f"given (`{','.join(params)}`)."
            )
        column = params[0] if params else None
        return cls(name=name, type=REFERENCE_TYPE, flags=frozenset(flags), reference_column=column)

    @property
    def nullable(self) -> bool:
        return FieldFlag.NULLABLE in self.flags

    @property
    def unique(self) -> bool:
        return FieldFlag.UNIQUE in self.flags

    @property
    def indexed(self) -> bool:
        return FieldFlag.INDEXED in self.flags or self.unique

    @property
    def is_reference(self) -> bool:
        return FieldFlag.REFERENCE in self.flags

    @property
    def column(self) -> str:
        """Storage column name; references store ``<name>_id`` by default."""

        if self.is_reference:
            return self.reference_column or f"{to_snake_case(self.name)}_id"
        return to_snake_case(self.name)

    @property
    def table(self) -> str | None:
        """Table referenced by a reference field."""

        if not self.is_reference:
            return None
        return pluralize(to_snake_case(self.name))


def column_type(spec: FieldSpec) -> str:
    """Return the column helper expression for ``spec``.

    ``string`` fields map to ``string_null``, ``string!`` to ``string`` and
    ``string^`` to ``string_uniq``; parameters are appended, so
    ``decimal_len!:10,2`` becomes ``decimal_len(10,2)``.
    """

    if spec.is_reference:
        return "references_null" if spec.nullable else "references"

    try:
        mapping = COLUMN_TYPES[spec.type]
    except KeyError:
        known = ", ".join(sorted(COLUMN_TYPES))
        raise InvalidField(f"type: `{spec.type}` is not supported. Known types: {known}.") from None

    if len(spec.params) != mapping.arity:
        raise InvalidField(
            f"type: `{spec.type}` requires specifying {mapping.arity} parameters, but only "
            f"{len(spec.params)} were given (`{','.join(spec.params)}`)."
        )

    if spec.unique:
        helper = mapping.unique
    elif spec.nullable:
        helper = mapping.nullable
    else:
        helper = mapping.required

    params = [to_pascal_case(param) for param in spec.params] if mapping.kind_params else list(spec.params)
    if params:
        return f"{helper}({','.join(params)})"
    return helper


def parse_fields(items: Iterable[Union[str, FieldSpec]]) -> tuple[FieldSpec, ...]:
    """Parse ``items`` in order, dropping automatically generated timestamps."""

    fields: list[FieldSpec] = []
    for item in items:
        spec = item if isinstance(item, FieldSpec) else FieldSpec.parse(item)
        if spec.name in IGNORE_FIELDS:
            LOGGER.warning(
                "field %s is generated automatically; dropping the redundant definition",
                spec.name,
            )
            continue
        fields.append(spec)
    return tuple(fields)
