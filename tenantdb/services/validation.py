"""Payload validation against a table schema, run before any network call.

Table schemas are turned into pydantic models with ``create_model``. Python
attribute names are positional (``f0``, ``f1``…) and the real column names
are aliases, so any column name (``json``, ``schema``, ``_meta``…) is safe.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StringConstraints,
    ValidationError,
    create_model,
)

from tenantdb.core.errors import SchemaValidationError, Violation
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
from tenantdb.models.schema import PRIMARY_KEY_COLUMN, TIMESTAMP_COLUMNS, TableSchema

# Shape check only: something@domain.tld
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_MODEL_CONFIG = ConfigDict(extra="ignore", populate_by_name=False)

# Filled by the store when absent, so never required on insert
SERVER_GENERATED_COLUMNS = frozenset({PRIMARY_KEY_COLUMN, *TIMESTAMP_COLUMNS})


# Factories return text; validate_default coerces it to the column type
def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_uuid() -> str:
    return str(uuid.uuid4())


_DEFERRED_FACTORIES = {
    DeferredDefault.NOW: _utcnow,
    DeferredDefault.UUID: _new_uuid,
}


# ── Public API ───────────────────────────────────────────────

def validate_insert(
    table_schema: TableSchema,
    payload: Any,
    *,
    table_name: str | None = None,
) -> dict[str, Any]:
    """Validate a full row; fills defaults and drops unknown keys."""
    violations: list[Violation] = []
    data = _validate_row(table_schema, payload, "", violations)
    if violations:
        raise SchemaValidationError(violations, table_name=table_name)
    return data


def validate_insert_many(
    table_schema: TableSchema,
    payloads: Sequence[Any],
    *,
    table_name: str | None = None,
) -> list[dict[str, Any]]:
    """Validate every row, reporting all violations prefixed with the row index."""
    violations: list[Violation] = []
    rows = [
        _validate_row(table_schema, payload, f"{i}.", violations)
        for i, payload in enumerate(payloads)
    ]
    if violations:
        raise SchemaValidationError(violations, table_name=table_name)
    return rows


def validate_update(
    table_schema: TableSchema,
    payload: Any,
    *,
    table_name: str | None = None,
) -> dict[str, Any]:
    """Validate only the keys present in ``payload``; no defaults are applied."""
    if not isinstance(payload, Mapping):
        raise SchemaValidationError(
            [Violation(path="", message="payload must be an object", kind="type")],
            table_name=table_name,
        )
    model = _model_for(table_schema, partial=True)
    try:
        instance = model.model_validate(payload)
    except ValidationError as exc:
        raise SchemaValidationError(violations_from(exc, ""), table_name=table_name) from None

    data = instance.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if not data:
        raise SchemaValidationError(
            [Violation(path="", message="no known columns to update", kind="empty")],
            table_name=table_name,
        )
    return data


def violations_from(exc: ValidationError, prefix: str = "") -> list[Violation]:
    return [
        Violation(
            path=prefix + ".".join(str(part) for part in err["loc"]),
            message=err["msg"],
            kind=err["type"],
        )
        for err in exc.errors()
    ]


# ── Internals ────────────────────────────────────────────────

def _validate_row(
    table_schema: TableSchema,
    payload: Any,
    prefix: str,
    violations: list[Violation],
) -> dict[str, Any]:
    if not isinstance(payload, Mapping):
        violations.append(Violation(
            path=prefix.rstrip("."), message="payload must be an object", kind="type",
        ))
        return {}

    model = _model_for(table_schema, partial=False)
    try:
        instance = model.model_validate(payload)
    except ValidationError as exc:
        violations.extend(violations_from(exc, prefix))
        return {}

    data = instance.model_dump(mode="json", by_alias=True)
    # Absent optional columns without a default are omitted, not sent as null
    for attr, (name, field) in zip(model.model_fields, table_schema.items()):
        if (
            (field.optional or name in SERVER_GENERATED_COLUMNS)
            and not field.has_default
            and attr not in instance.model_fields_set
        ):
            data.pop(name, None)
    return data


def _model_for(table_schema: TableSchema, *, partial: bool) -> type[BaseModel]:
    key = "update" if partial else "insert"
    model = table_schema._validators.get(key)
    if model is None:
        model = _build_model(
            "TableRow",
            table_schema,
            partial=partial,
            server_generated=frozenset() if partial else SERVER_GENERATED_COLUMNS,
        )
        table_schema._validators[key] = model
    return model


def _build_model(
    model_name: str,
    shape: Mapping[str, BaseField],
    *,
    partial: bool = False,
    server_generated: frozenset[str] = frozenset(),
) -> type[BaseModel]:
    definitions: dict[str, Any] = {}
    for i, (name, field) in enumerate(shape.items()):
        if name in server_generated and not field.has_default:
            field = field.as_optional()
        definitions[f"f{i}"] = _field_definition(f"{model_name}_{i}", name, field, partial)
    return create_model(model_name, __config__=_MODEL_CONFIG, **definitions)


def _field_definition(
    model_name: str,
    name: str,
    field: BaseField,
    partial: bool,
) -> tuple[Any, Any]:
    annotation = _annotation(model_name, field)
    # Optional governs absence only; null is accepted where the column allows it
    null_default = field.has_default and field.deferred_default is None and field.default is None
    if field.nullable or null_default:
        annotation = Optional[annotation]

    if partial:
        return annotation, Field(default=None, alias=name)
    if field.has_default:
        if field.deferred_default is not None:
            factory = _DEFERRED_FACTORIES[field.deferred_default]
            return annotation, Field(default_factory=factory, alias=name, validate_default=True)
        return annotation, Field(default=field.default, alias=name, validate_default=True)
    if field.optional:
        return annotation, Field(default=None, alias=name)
    return annotation, Field(alias=name)


def _annotation(model_name: str, field: BaseField) -> Any:
    match field:
        case StringField(is_uuid=True):
            return uuid.UUID
        case StringField():
            pattern = field.pattern or (EMAIL_PATTERN if field.is_email else None)
            return Annotated[
                str,
                StringConstraints(
                    min_length=field.min_length,
                    max_length=field.max_length,
                    pattern=pattern,
                ),
            ]
        case NumberField(is_integer=True):
            return Annotated[int, Field(strict=True, ge=field.minimum, le=field.maximum)]
        case NumberField():
            return Annotated[
                float,
                Field(strict=True, allow_inf_nan=False, ge=field.minimum, le=field.maximum),
            ]
        case BooleanField():
            return StrictBool
        case DateField():
            return datetime
        case ObjectField():
            return _build_model(model_name, field.shape)
        case ArrayField():
            element = _annotation(f"{model_name}_item", field.element)
            if field.element.nullable:
                element = Optional[element]
            return Annotated[
                list[element],
                Field(min_length=field.min_items, max_length=field.max_items),
            ]
        case RecordField():
            value = _annotation(f"{model_name}_value", field.value_type)
            if field.value_type.nullable:
                value = Optional[value]
            return dict[str, value]
        case EnumField():
            return Literal[field.values]
        case LiteralField():
            return Literal[field.value]
        case _:
            return Any
