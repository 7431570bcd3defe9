"""Structured query requests and control-plane responses."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Operation(StrEnum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class Operator(StrEnum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    ILIKE = "ilike"
    IN = "in"
    IS = "is"
    NOT = "not"


class Direction(StrEnum):
    ASC = "asc"
    DESC = "desc"


class WhereCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    operator: Operator = Operator.EQ
    value: Any = None


class OrderBy(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    direction: Direction = Direction.ASC


class QueryOptions(BaseModel):
    """Options forwarded verbatim to the remote query endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    select: str | list[str] | None = None
    where: list[WhereCondition] | None = None
    order_by: list[OrderBy] | None = Field(default=None, alias="orderBy")
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def where(column: str, operator: Operator | str = Operator.EQ, value: Any = None) -> WhereCondition:
    return WhereCondition(column=column, operator=operator, value=value)


class ApiResponse(BaseModel):
    """Envelope returned by every control-plane endpoint."""

    model_config = ConfigDict(extra="allow")

    success: bool = False
    data: Any = None
    error: str | None = None
    message: str | None = None
    status_code: int | None = None
