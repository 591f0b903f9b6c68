"""Assemble the read-only environment handed to the template renderer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Sequence

from .errors import DuplicateField
from .fields import FieldSpec, column_type
from .naming import Identifier, resolve

__all__ = ["RenderContext", "build_context", "field_context"]


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(_freeze(item) for item in value))
    return value


@dataclass(frozen=True, slots=True)
class RenderContext(Mapping[str, Any]):
    """Frozen key/value namespace shared by every job of one invocation."""

    data: Mapping[str, Any]
    identifier: Identifier
    fields: tuple[FieldSpec, ...]
    timestamp: datetime

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)


def field_context(spec: FieldSpec) -> dict[str, Any]:
    """Expose one field's name variants alongside its type information."""

    names = resolve(spec.name)
    return {
        "name": spec.name,
        **names.as_dict(),
        "type": spec.type,
        "column_type": column_type(spec),
        "column": spec.column,
        "table": spec.table,
        "params": spec.params,
        "nullable": spec.nullable,
        "unique": spec.unique,
        "indexed": spec.indexed,
        "is_reference": spec.is_reference,
    }


def _check_unique(fields: Sequence[FieldSpec]) -> None:
    seen: dict[str, str] = {}
    for spec in fields:
        key = spec.name.casefold()
        if key in seen:
            raise DuplicateField(
                f"field `{spec.name}` collides with field `{seen[key]}` (names are case-insensitive)"
            )
        seen[key] = spec.name


def build_context(
    identifier: Identifier,
    fields: Iterable[FieldSpec] = (),
    options: Mapping[str, str] | None = None,
    *,
    timestamp: datetime | None = None,
    features: Iterable[str] = (),
) -> RenderContext:
    """Build the :class:`RenderContext` for one generator invocation.

    Identifier variants are exposed at the top level under their
    :class:`~forgegen.naming.VariantKind` values, next to ``name`` (the raw
    identifier), ``fields``, ``columns`` (non-reference fields),
    ``references``, ``options``, ``features``, ``ts`` and ``ts_compact``.
    """

    specs = tuple(fields)
    _check_unique(specs)

    moment = timestamp or datetime.now(timezone.utc)
    described = [field_context(spec) for spec in specs]

    values: dict[str, Any] = {
        "name": identifier.raw,
        **identifier.as_dict(),
        "fields": described,
        "columns": [item for item in described if not item["is_reference"]],
        "references": [item for item in described if item["is_reference"]],
        "options": {str(key): str(value) for key, value in (options or {}).items()},
        "features": sorted(set(features)),
        "ts": moment.isoformat(),
        "ts_compact": moment.strftime("%Y%m%d_%H%M%S"),
    }

    return RenderContext(
        data=_freeze(values),
        identifier=identifier,
        fields=specs,
        timestamp=moment,
    )
