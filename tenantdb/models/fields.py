"""Field schemas — declarative, immutable descriptions of one column.

Every field is one arm of the closed ``FieldSchema`` union, discriminated on
``kind``. Builders at the bottom of the module are the intended way to create
them::

    from tenantdb.models import fields as f

    users = {
        "name": f.string(max_length=100),
        "role": f.enum("admin", "user"),
        "last_active": f.date().as_optional(),
        "joined_at": f.date().with_default(f.NOW),
    }
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Annotated, Any, Literal, Self, Union

from pydantic import BaseModel, ConfigDict, Field

from tenantdb.core.errors import SchemaDefinitionError


class FieldKind(StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    RECORD = "record"
    ENUM = "enum"
    LITERAL = "literal"


class DeferredDefault(StrEnum):
    """Defaults produced at write time rather than stored as a literal."""

    NOW = "now"
    UUID = "uuid"


NOW = DeferredDefault.NOW
NEW_UUID = DeferredDefault.UUID

LiteralValue = str | int | float | bool


class BaseField(BaseModel):
    """Modifiers shared by every field kind."""

    model_config = ConfigDict(frozen=True)

    optional: bool = False
    nullable: bool = False
    has_default: bool = False
    default: Any = None
    deferred_default: DeferredDefault | None = None
    description: str | None = None

    def as_optional(self) -> Self:
        return self.model_copy(update={"optional": True})

    def as_nullable(self) -> Self:
        return self.model_copy(update={"nullable": True})

    def with_default(self, value: Any) -> Self:
        if isinstance(value, DeferredDefault):
            update = {"has_default": True, "default": None, "deferred_default": value}
        else:
            update = {"has_default": True, "default": value, "deferred_default": None}
        return self.model_copy(update=update)

    def describe(self, text: str) -> Self:
        return self.model_copy(update={"description": text})


class StringField(BaseField):
    kind: Literal["string"] = "string"
    max_length: int | None = None
    min_length: int | None = None
    is_uuid: bool = False
    is_email: bool = False
    pattern: str | None = None


class NumberField(BaseField):
    kind: Literal["number"] = "number"
    is_integer: bool = False
    minimum: float | None = None
    maximum: float | None = None


class BooleanField(BaseField):
    kind: Literal["boolean"] = "boolean"


class DateField(BaseField):
    kind: Literal["date"] = "date"


class ObjectField(BaseField):
    kind: Literal["object"] = "object"
    shape: dict[str, FieldSchema] = Field(default_factory=dict)


class ArrayField(BaseField):
    kind: Literal["array"] = "array"
    element: FieldSchema
    min_items: int | None = None
    max_items: int | None = None


class RecordField(BaseField):
    kind: Literal["record"] = "record"
    value_type: FieldSchema


class EnumField(BaseField):
    kind: Literal["enum"] = "enum"
    values: tuple[str, ...]


class LiteralField(BaseField):
    kind: Literal["literal"] = "literal"
    value: LiteralValue


FieldSchema = Annotated[
    Union[
        StringField,
        NumberField,
        BooleanField,
        DateField,
        ObjectField,
        ArrayField,
        RecordField,
        EnumField,
        LiteralField,
    ],
    Field(discriminator="kind"),
]

ObjectField.model_rebuild()
ArrayField.model_rebuild()
RecordField.model_rebuild()


# ── Builders ─────────────────────────────────────────────────

def string(
    *,
    max_length: int | None = None,
    min_length: int | None = None,
    uuid: bool = False,
    email: bool = False,
    pattern: str | None = None,
) -> StringField:
    return StringField(
        max_length=max_length,
        min_length=min_length,
        is_uuid=uuid,
        is_email=email,
        pattern=pattern,
    )


def number(
    *,
    integer: bool = False,
    minimum: float | None = None,
    maximum: float | None = None,
) -> NumberField:
    return NumberField(is_integer=integer, minimum=minimum, maximum=maximum)


def integer(*, minimum: float | None = None, maximum: float | None = None) -> NumberField:
    return number(integer=True, minimum=minimum, maximum=maximum)


def boolean() -> BooleanField:
    return BooleanField()


def date() -> DateField:
    return DateField()


def obj(shape: Mapping[str, BaseField] | None = None, **fields: BaseField) -> ObjectField:
    merged = dict(shape or {})
    merged.update(fields)
    return ObjectField(shape=merged)


def array(
    element: BaseField,
    *,
    min_items: int | None = None,
    max_items: int | None = None,
) -> ArrayField:
    return ArrayField(element=element, min_items=min_items, max_items=max_items)


def record(value_type: BaseField) -> RecordField:
    return RecordField(value_type=value_type)


def enum(*values: str | Iterable[str]) -> EnumField:
    """Accepts ``enum("a", "b")`` or ``enum(["a", "b"])``."""
    if len(values) == 1 and not isinstance(values[0], str):
        flat = tuple(values[0])
    else:
        flat = tuple(values)  # type: ignore[arg-type]
    if not flat:
        raise SchemaDefinitionError("enum fields need at least one value")
    return EnumField(values=flat)


def literal(value: LiteralValue) -> LiteralField:
    return LiteralField(value=value)
