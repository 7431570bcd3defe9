"""Schema, DDL and query models."""

from tenantdb.models.ddl import (
    ColumnDefinition,
    ColumnType,
    ConstraintDefinition,
    ConstraintType,
    IndexDefinition,
    Reference,
    TableDefinition,
)
from tenantdb.models.fields import (
    NEW_UUID,
    NOW,
    ArrayField,
    BaseField,
    BooleanField,
    DateField,
    DeferredDefault,
    EnumField,
    FieldKind,
    FieldSchema,
    LiteralField,
    NumberField,
    ObjectField,
    RecordField,
    StringField,
)
from tenantdb.models.query import (
    ApiResponse,
    Direction,
    Operation,
    Operator,
    OrderBy,
    QueryOptions,
    WhereCondition,
    where,
)
from tenantdb.models.schema import SchemaDefinition, TableSchema, define

__all__ = [
    "NEW_UUID",
    "NOW",
    "ApiResponse",
    "ArrayField",
    "BaseField",
    "BooleanField",
    "ColumnDefinition",
    "ColumnType",
    "ConstraintDefinition",
    "ConstraintType",
    "DateField",
    "DeferredDefault",
    "Direction",
    "EnumField",
    "FieldKind",
    "FieldSchema",
    "IndexDefinition",
    "LiteralField",
    "NumberField",
    "ObjectField",
    "Operation",
    "Operator",
    "OrderBy",
    "QueryOptions",
    "RecordField",
    "Reference",
    "SchemaDefinition",
    "StringField",
    "TableDefinition",
    "TableSchema",
    "WhereCondition",
    "define",
    "where",
]
