"""Table schemas and the application-wide schema definition."""

from __future__ import annotations

import math
import re
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from tenantdb.core.errors import SchemaDefinitionError
from tenantdb.models.fields import (
    ArrayField,
    BaseField,
    DateField,
    EnumField,
    ObjectField,
    RecordField,
    StringField,
)

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Columns every compiled table carries regardless of the declared fields
PRIMARY_KEY_COLUMN = "id"
TIMESTAMP_COLUMNS = ("created_at", "updated_at")


class TableSchema(Mapping[str, BaseField]):
    """Ordered mapping of field name → field schema for one table."""

    def __init__(
        self,
        fields: Mapping[str, BaseField] | None = None,
        *,
        description: str | None = None,
        **extra: BaseField,
    ) -> None:
        merged: dict[str, BaseField] = dict(fields or {})
        merged.update(extra)
        self._fields = MappingProxyType(merged)
        self.description = description
        # Per-schema memo of generated payload validators
        self._validators: dict[str, Any] = {}

    def __getitem__(self, key: str) -> BaseField:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"TableSchema({list(self._fields)!r})"


class SchemaDefinition:
    """Named set of table schemas plus a version, fixed for the process lifetime."""

    def __init__(
        self,
        tables: Mapping[str, TableSchema | Mapping[str, BaseField]],
        *,
        version: int = 1,
    ) -> None:
        coerced: dict[str, TableSchema] = {}
        for name, table in tables.items():
            if not isinstance(table, TableSchema):
                table = TableSchema(table)
            _check_table(name, table)
            coerced[name] = table
        self.tables: Mapping[str, TableSchema] = MappingProxyType(coerced)
        self.version = version

    def table_names(self) -> list[str]:
        return list(self.tables)

    def table(self, name: str) -> TableSchema:
        try:
            return self.tables[name]
        except KeyError:
            raise SchemaDefinitionError(f"Unknown table {name!r}") from None

    def validate_table_data(self, name: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate ``data`` as an insert payload for table ``name``."""
        from tenantdb.services.validation import validate_insert

        return validate_insert(self.table(name), data, table_name=name)

    def to_serializable(self) -> dict[str, Any]:
        from tenantdb.services.serializer import serialize_table

        return {
            "tables": {
                name: {
                    "shape": serialize_table(table),
                    "description": table.description,
                }
                for name, table in self.tables.items()
            },
            "version": self.version,
        }


def define(
    tables: Mapping[str, TableSchema | Mapping[str, BaseField]] | None = None,
    *,
    version: int = 1,
    **named: TableSchema | Mapping[str, BaseField],
) -> SchemaDefinition:
    merged = dict(tables or {})
    merged.update(named)
    return SchemaDefinition(merged, version=version)


# ── Definition-time checks ───────────────────────────────────

def _check_table(table_name: str, table: TableSchema) -> None:
    if not IDENTIFIER_RE.match(table_name):
        raise SchemaDefinitionError(f"Invalid table name {table_name!r}")

    for field_name, field in table.items():
        if not IDENTIFIER_RE.match(field_name):
            raise SchemaDefinitionError(
                f"Invalid field name {field_name!r} in table {table_name!r}"
            )
        if field_name == PRIMARY_KEY_COLUMN and not (
            isinstance(field, StringField) and field.is_uuid
        ):
            raise SchemaDefinitionError(
                f"Field 'id' in table {table_name!r} must be a UUID string"
            )
        if field_name in TIMESTAMP_COLUMNS and not isinstance(field, DateField):
            raise SchemaDefinitionError(
                f"Field {field_name!r} in table {table_name!r} must be a date"
            )
        _check_field(f"{table_name}.{field_name}", field)


def _check_field(path: str, field: BaseField) -> None:
    if not isinstance(field, BaseField):
        raise SchemaDefinitionError(f"{path} is not a field schema")
    if isinstance(field.default, float) and not math.isfinite(field.default):
        raise SchemaDefinitionError(f"{path} default must be a finite number")
    if isinstance(field, EnumField) and not field.values:
        raise SchemaDefinitionError(f"{path} enum needs at least one value")
    if isinstance(field, ObjectField):
        for key, child in field.shape.items():
            _check_field(f"{path}.{key}", child)
    elif isinstance(field, ArrayField):
        _check_field(f"{path}[]", field.element)
    elif isinstance(field, RecordField):
        _check_field(f"{path}{{}}", field.value_type)
