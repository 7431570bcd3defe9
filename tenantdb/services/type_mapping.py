"""Field type mapper — field schema → PostgreSQL column definition.

Pure and deterministic; no I/O. Example:

    >>> map_field("name", string(max_length=100))
    ColumnDefinition(name='name', type=<ColumnType.VARCHAR: 'VARCHAR'>, nullable=False, ...)
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any

from tenantdb.models.ddl import ColumnDefinition, ColumnType
from tenantdb.models.fields import (
    ArrayField,
    BaseField,
    BooleanField,
    DateField,
    DeferredDefault,
    EnumField,
    LiteralField,
    NumberField,
    ObjectField,
    RecordField,
    StringField,
)
from tenantdb.services.relationships import should_index

logger = logging.getLogger(__name__)

# Strings bounded at or below this length become VARCHAR(n)
MAX_VARCHAR_LENGTH = 255

_DEFERRED_SQL = {
    DeferredDefault.NOW: "NOW()",
    DeferredDefault.UUID: "gen_random_uuid()",
}


def map_field(name: str, field: BaseField) -> ColumnDefinition:
    column_type, length = column_type_for(name, field)

    nullable = field.optional or field.nullable
    default: str | None = None
    if field.has_default:
        if field.deferred_default is None and field.default is None:
            default = "NULL"
            nullable = True
        else:
            default = render_default(field)
            # A default makes the column NOT NULL unless explicitly nullable
            nullable = field.nullable

    return ColumnDefinition(
        name=name,
        type=column_type,
        nullable=nullable,
        default=default,
        length=length,
        index=should_index(name),
    )


def column_type_for(name: str, field: BaseField) -> tuple[ColumnType, int | None]:
    """Return the column type and, for VARCHAR, its length."""
    match field:
        case StringField(is_uuid=True):
            return ColumnType.UUID, None
        case StringField(max_length=int(limit)) if limit <= MAX_VARCHAR_LENGTH:
            return ColumnType.VARCHAR, limit
        case StringField():
            return ColumnType.TEXT, None
        case NumberField(is_integer=True):
            return ColumnType.INTEGER, None
        case NumberField():
            return ColumnType.NUMERIC, None
        case BooleanField():
            return ColumnType.BOOLEAN, None
        case DateField():
            return ColumnType.TIMESTAMPTZ, None
        case ObjectField() | ArrayField() | RecordField():
            return ColumnType.JSONB, None
        case EnumField() | LiteralField():
            # Stored as plain text; allowed values are enforced client-side only
            return ColumnType.TEXT, None
        case _:
            logger.warning(
                "No column mapping for field %r of kind %r; falling back to TEXT",
                name,
                getattr(field, "kind", type(field).__name__),
            )
            return ColumnType.TEXT, None


def render_default(field: BaseField) -> str:
    if field.deferred_default is not None:
        return _DEFERRED_SQL[field.deferred_default]
    return render_literal(field.default)


def render_literal(value: Any) -> str:
    """Render a Python value as a PostgreSQL literal."""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return quote_literal(value)
    if isinstance(value, (datetime, date)):
        return quote_literal(value.isoformat())
    if isinstance(value, (dict, list, tuple)):
        encoded = json.dumps(value, separators=(",", ":"), default=_encode_json)
        return f"{quote_literal(encoded)}::jsonb"
    return quote_literal(str(value))


def _encode_json(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def quote_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"
