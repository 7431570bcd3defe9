"""Schema serializer — field schemas ⇄ JSON-safe descriptors for the control plane.

Descriptors keep every attribute the type mapper reads, so compiling a
rehydrated descriptor gives the same columns as compiling the original.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from tenantdb.core.errors import SchemaDefinitionError
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
from tenantdb.models.schema import TableSchema


def serialize_table(table_schema: Mapping[str, BaseField]) -> dict[str, Any]:
    return {name: serialize_field(field) for name, field in table_schema.items()}


def serialize_field(field: BaseField) -> dict[str, Any]:
    descriptor: dict[str, Any] = {
        "kind": str(getattr(field, "kind", "unknown")),
        "optional": field.optional,
        "nullable": field.nullable,
        "hasDefault": field.has_default,
    }
    if field.has_default:
        if field.deferred_default is not None:
            descriptor["deferredDefault"] = str(field.deferred_default)
        else:
            descriptor["default"] = _json_safe(field.default)
    if field.description:
        descriptor["description"] = field.description

    match field:
        case StringField():
            formats = [name for name, on in (("uuid", field.is_uuid), ("email", field.is_email)) if on]
            _put(descriptor, maxLength=field.max_length, minLength=field.min_length,
                 pattern=field.pattern)
            if formats:
                descriptor["formats"] = formats
        case NumberField():
            descriptor["integer"] = field.is_integer
            _put(descriptor, minimum=field.minimum, maximum=field.maximum)
        case ObjectField():
            descriptor["shape"] = serialize_table(field.shape)
        case ArrayField():
            descriptor["element"] = serialize_field(field.element)
            _put(descriptor, minItems=field.min_items, maxItems=field.max_items)
        case RecordField():
            descriptor["valueType"] = serialize_field(field.value_type)
        case EnumField():
            descriptor["values"] = list(field.values)
        case LiteralField():
            descriptor["value"] = field.value
    return descriptor


def deserialize_table(descriptor: Mapping[str, Any]) -> TableSchema:
    return TableSchema({name: deserialize_field(d) for name, d in descriptor.items()})


def deserialize_field(descriptor: Mapping[str, Any]) -> BaseField:
    kind = descriptor.get("kind")
    deferred = descriptor.get("deferredDefault")
    common: dict[str, Any] = {
        "optional": bool(descriptor.get("optional", False)),
        "nullable": bool(descriptor.get("nullable", False)),
        "has_default": bool(descriptor.get("hasDefault", False)),
        "default": descriptor.get("default"),
        "deferred_default": DeferredDefault(deferred) if deferred else None,
        "description": descriptor.get("description"),
    }

    match kind:
        case "string":
            formats = descriptor.get("formats") or []
            return StringField(
                **common,
                max_length=descriptor.get("maxLength"),
                min_length=descriptor.get("minLength"),
                pattern=descriptor.get("pattern"),
                is_uuid="uuid" in formats,
                is_email="email" in formats,
            )
        case "number":
            return NumberField(
                **common,
                is_integer=bool(descriptor.get("integer", False)),
                minimum=descriptor.get("minimum"),
                maximum=descriptor.get("maximum"),
            )
        case "boolean":
            return BooleanField(**common)
        case "date":
            return DateField(**common)
        case "object":
            shape = descriptor.get("shape") or {}
            return ObjectField(
                **common,
                shape={name: deserialize_field(d) for name, d in shape.items()},
            )
        case "array":
            return ArrayField(
                **common,
                element=deserialize_field(_required(descriptor, "element")),
                min_items=descriptor.get("minItems"),
                max_items=descriptor.get("maxItems"),
            )
        case "record":
            return RecordField(
                **common,
                value_type=deserialize_field(_required(descriptor, "valueType")),
            )
        case "enum":
            return EnumField(**common, values=tuple(_required(descriptor, "values")))
        case "literal":
            return LiteralField(**common, value=_required(descriptor, "value"))
        case _:
            raise SchemaDefinitionError(f"Unknown field kind {kind!r} in descriptor")


def _put(descriptor: dict[str, Any], **values: Any) -> None:
    for key, value in values.items():
        if value is not None:
            descriptor[key] = value


def _required(descriptor: Mapping[str, Any], key: str) -> Any:
    if key not in descriptor:
        raise SchemaDefinitionError(
            f"Descriptor of kind {descriptor.get('kind')!r} is missing {key!r}"
        )
    return descriptor[key]


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value
