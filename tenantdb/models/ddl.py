"""Compiled table artifacts — transient, produced per compile-and-send call."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ColumnType(StrEnum):
    TEXT = "TEXT"
    VARCHAR = "VARCHAR"
    INTEGER = "INTEGER"
    NUMERIC = "NUMERIC"
    BOOLEAN = "BOOLEAN"
    TIMESTAMPTZ = "TIMESTAMP WITH TIME ZONE"
    JSONB = "JSONB"
    UUID = "UUID"


class ConstraintType(StrEnum):
    CHECK = "check"
    FOREIGN_KEY = "foreign_key"
    UNIQUE = "unique"
    PRIMARY_KEY = "primary_key"


@dataclass(frozen=True)
class Reference:
    """Target of an inferred foreign key."""
    table: str
    column: str = "id"


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    type: ColumnType
    nullable: bool
    default: str | None = None
    primary_key: bool = False
    unique: bool = False
    length: int | None = None
    index: bool = False

    @property
    def sql_type(self) -> str:
        if self.type is ColumnType.VARCHAR and self.length is not None:
            return f"VARCHAR({self.length})"
        return str(self.type)


@dataclass(frozen=True)
class IndexDefinition:
    name: str
    columns: tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class ConstraintDefinition:
    name: str
    type: ConstraintType
    definition: str


@dataclass(frozen=True)
class TableDefinition:
    name: str
    columns: tuple[ColumnDefinition, ...]
    indexes: tuple[IndexDefinition, ...] = field(default_factory=tuple)
    constraints: tuple[ConstraintDefinition, ...] = field(default_factory=tuple)

    def column(self, name: str) -> ColumnDefinition:
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(name)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]
