"""Provisioning manager — make sure a table exists before it is queried.

The cache maps ``namespace.table`` to the asyncio task doing (or having done)
the check/create sequence. Concurrent first callers await the same task, so
one table is created at most once per manager. The cache starts empty, only
grows, and keeps a key only once its task has succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any

from tenantdb.core.errors import TenantDBError
from tenantdb.models.query import ApiResponse, Operation
from tenantdb.models.schema import TableSchema
from tenantdb.services.control_plane import ControlPlaneClient
from tenantdb.services.serializer import serialize_table
from tenantdb.services.table_compiler import namespace_for, to_ddl

logger = logging.getLogger(__name__)


def _succeeded(task: asyncio.Task[None]) -> bool:
    return task.done() and not task.cancelled() and task.exception() is None


class ProvisioningManager:
    """Owns the provisioning cache for one tenant namespace."""

    def __init__(
        self,
        control_plane: ControlPlaneClient,
        app_id: str,
        company_id: str | None = None,
    ) -> None:
        self._control_plane = control_plane
        self.namespace = namespace_for(app_id, company_id)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._waiters: dict[asyncio.Task[None], int] = {}

    def table_key(self, table_name: str) -> str:
        return f"{self.namespace}.{table_name}"

    def is_provisioned(self, table_name: str) -> bool:
        task = self._tasks.get(self.table_key(table_name))
        return task is not None and _succeeded(task)

    def provisioned_tables(self) -> list[str]:
        prefix = f"{self.namespace}."
        return [
            key[len(prefix):]
            for key, task in self._tasks.items()
            if _succeeded(task)
        ]

    async def ensure_table(self, table_name: str, table_schema: TableSchema) -> None:
        """Confirm or create ``table_name``; every concurrent caller shares one attempt.

        Failures propagate to all waiters and leave no cache entry, so the
        next call starts over. Cancelling one waiter does not disturb the
        others; cancelling the last one aborts the remote work.
        """
        key = self.table_key(table_name)
        task = self._tasks.get(key)

        if task is not None and _succeeded(task):
            logger.debug("Table %s already provisioned", key)
            return

        # A failed or cancelled task may linger until its done callback runs
        if task is None or task.done() or task.cancelling():
            task = asyncio.create_task(
                self._provision(table_name, table_schema),
                name=f"provision:{key}",
            )
            task.add_done_callback(partial(self._on_done, key))
            self._tasks[key] = task

        self._waiters[task] = self._waiters.get(task, 0) + 1
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done() and self._waiters[task] == 1:
                logger.debug("Last waiter for %s cancelled; aborting provisioning", key)
                task.cancel()
            raise
        finally:
            remaining = self._waiters[task] - 1
            if remaining:
                self._waiters[task] = remaining
            else:
                del self._waiters[task]

    async def query(
        self,
        table_name: str,
        operation: Operation,
        options: dict[str, Any],
    ) -> ApiResponse:
        return await self._control_plane.query(self.namespace, table_name, operation, options)

    # ── Internals ────────────────────────────────────────────

    async def _provision(self, table_name: str, table_schema: TableSchema) -> None:
        namespace = self.namespace
        try:
            exists = await self._control_plane.check_table(namespace, table_name)
        except TenantDBError as exc:
            logger.warning(
                "Could not check table %s.%s, treating it as missing: %s",
                namespace,
                table_name,
                exc,
            )
            exists = False

        if exists:
            logger.info("Table %s.%s already exists", namespace, table_name)
            return

        logger.info("Creating table %s.%s", namespace, table_name)
        await self._control_plane.ensure_schema(namespace)
        await self._control_plane.ensure_table(
            namespace,
            table_name,
            to_ddl(table_name, table_schema),
            serialize_table(table_schema),
        )
        logger.info("Table %s.%s created", namespace, table_name)

    def _on_done(self, key: str, task: asyncio.Task[None]) -> None:
        if _succeeded(task):
            return
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if not task.cancelled():
            logger.debug("Provisioning %s failed: %s", key, task.exception())
