"""Typed CRUD over one provisioned table.

Writes are validated locally first, then the table is provisioned, then a
single query request is sent. A rejected payload never reaches the network.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from tenantdb.core.errors import QueryError, SchemaValidationError
from tenantdb.models.query import ApiResponse, Operation, Operator, QueryOptions, WhereCondition
from tenantdb.models.schema import PRIMARY_KEY_COLUMN, TableSchema
from tenantdb.services.provisioning import ProvisioningManager
from tenantdb.services.validation import (
    validate_insert,
    validate_insert_many,
    validate_update,
    violations_from,
)

logger = logging.getLogger(__name__)

Conditions = Sequence[WhereCondition | Mapping[str, Any]]
Options = QueryOptions | Mapping[str, Any] | None


class TableOperations:
    """CRUD facade for a single declared table."""

    def __init__(
        self,
        table_name: str,
        table_schema: TableSchema,
        manager: ProvisioningManager,
    ) -> None:
        self.table_name = table_name
        self.table_schema = table_schema
        self._manager = manager

    def __repr__(self) -> str:
        return f"TableOperations({self.table_name!r})"

    # ── Reads ────────────────────────────────────────────────

    async def select(self, options: Options = None) -> list[dict[str, Any]]:
        request = self._query_options(options).to_request()
        response = await self._run(Operation.SELECT, request)
        return _rows(response.data)

    async def select_one(self, options: Options = None) -> dict[str, Any] | None:
        query = self._query_options(options).model_copy(update={"limit": 1})
        response = await self._run(Operation.SELECT, query.to_request())
        rows = _rows(response.data)
        return rows[0] if rows else None

    async def count(self, conditions: Conditions | None = None) -> int:
        request: dict[str, Any] = {"count": True}
        if conditions:
            request["where"] = self._conditions(conditions)
        response = await self._run(Operation.SELECT, request)
        return _int_field(response.data, "count")

    # ── Writes ───────────────────────────────────────────────

    async def insert(self, payload: Mapping[str, Any]) -> dict[str, Any] | None:
        data = validate_insert(self.table_schema, payload, table_name=self.table_name)
        response = await self._run(Operation.INSERT, {"data": data})
        return _record(response.data)

    async def insert_many(self, payloads: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        rows = validate_insert_many(self.table_schema, payloads, table_name=self.table_name)
        if not rows:
            return []
        response = await self._run(Operation.INSERT, {"data": rows, "multiple": True})
        return _rows(response.data)

    async def update(self, record_id: Any, payload: Mapping[str, Any]) -> dict[str, Any] | None:
        data = validate_update(self.table_schema, payload, table_name=self.table_name)
        request = {"where": self._id_condition(record_id), "data": data}
        response = await self._run(Operation.UPDATE, request)
        return _record(response.data)

    async def update_where(
        self,
        conditions: Conditions,
        payload: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        data = validate_update(self.table_schema, payload, table_name=self.table_name)
        request = {
            "where": self._conditions(conditions),
            "data": data,
            "returnAll": True,
        }
        response = await self._run(Operation.UPDATE, request)
        return _rows(response.data)

    async def delete(self, record_id: Any) -> bool:
        request = {"where": self._id_condition(record_id)}
        response = await self._run(Operation.DELETE, request, allow_failure=True)
        return response.success

    async def delete_where(self, conditions: Conditions) -> int:
        request = {"where": self._conditions(conditions), "returnCount": True}
        response = await self._run(Operation.DELETE, request)
        return _int_field(response.data, "deletedCount")

    # ── Internals ────────────────────────────────────────────

    async def _run(
        self,
        operation: Operation,
        options: dict[str, Any],
        *,
        allow_failure: bool = False,
    ) -> ApiResponse:
        await self._manager.ensure_table(self.table_name, self.table_schema)
        response = await self._manager.query(self.table_name, operation, options)

        http_error = response.status_code is not None and response.status_code >= 400
        if not response.success and (http_error or not allow_failure):
            detail = response.error or response.message or "query failed"
            raise QueryError(
                f"{operation} on {self.table_name} failed: {detail}",
                operation=str(operation),
                table_name=self.table_name,
                status_code=response.status_code,
            )
        return response

    def _query_options(self, options: Options) -> QueryOptions:
        if options is None:
            return QueryOptions()
        if isinstance(options, QueryOptions):
            return options
        try:
            return QueryOptions.model_validate(options)
        except ValidationError as exc:
            raise SchemaValidationError(
                violations_from(exc, "options."), table_name=self.table_name
            ) from None

    def _conditions(self, conditions: Conditions) -> list[dict[str, Any]]:
        try:
            parsed = [
                c if isinstance(c, WhereCondition) else WhereCondition.model_validate(c)
                for c in conditions
            ]
        except ValidationError as exc:
            raise SchemaValidationError(
                violations_from(exc, "where."), table_name=self.table_name
            ) from None
        return [c.model_dump(mode="json") for c in parsed]

    def _id_condition(self, record_id: Any) -> list[dict[str, Any]]:
        return self._conditions([
            WhereCondition(column=PRIMARY_KEY_COLUMN, operator=Operator.EQ, value=str(record_id)),
        ])


def _rows(data: Any) -> list[dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


def _record(data: Any) -> dict[str, Any] | None:
    if isinstance(data, list):
        return data[0] if data else None
    return data


def _int_field(data: Any, key: str) -> int:
    if isinstance(data, Mapping):
        return int(data.get(key) or 0)
    if isinstance(data, int) and not isinstance(data, bool):
        return data
    logger.debug("Expected %r in query response, got %r", key, data)
    return 0
