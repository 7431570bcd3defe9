"""Database facade — one entry point wiring settings, provisioning and tables.

    from tenantdb import Database, define, fields as f

    schema = define(users={"name": f.string(max_length=100), "email": f.string(email=True)})

    async with Database(schema) as db:
        user = await db.users.insert({"name": "John", "email": "j@x.com"})
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from types import MappingProxyType

import httpx

from tenantdb.core.config import Settings, get_settings
from tenantdb.models.schema import SchemaDefinition
from tenantdb.services.control_plane import ControlPlaneClient
from tenantdb.services.provisioning import ProvisioningManager
from tenantdb.services.table_operations import TableOperations

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "tenantdb"


class Database:
    def __init__(
        self,
        schema: SchemaDefinition,
        settings: Settings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if self.settings.debug:
            logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)

        self.schema = schema
        self._control_plane = ControlPlaneClient(self.settings, http_client)
        self.provisioning = ProvisioningManager(
            self._control_plane,
            self.settings.app_id,
            self.settings.company_id or None,
        )
        self.tables: Mapping[str, TableOperations] = MappingProxyType({
            name: TableOperations(name, table_schema, self.provisioning)
            for name, table_schema in schema.tables.items()
        })
        logger.debug(
            "Database ready for namespace %s with tables %s",
            self.namespace,
            ", ".join(self.tables) or "(none)",
        )

    @property
    def namespace(self) -> str:
        return self.provisioning.namespace

    def __getattr__(self, name: str) -> TableOperations:
        # Only reached for names that are not regular attributes
        tables = self.__dict__.get("tables")
        if tables is not None and name in tables:
            return tables[name]
        raise AttributeError(f"{type(self).__name__!r} has no table or attribute {name!r}")

    def __getitem__(self, name: str) -> TableOperations:
        return self.tables[name]

    async def provision_all(self) -> None:
        """Provision every declared table concurrently."""
        await asyncio.gather(*(
            self.provisioning.ensure_table(name, table.table_schema)
            for name, table in self.tables.items()
        ))

    async def aclose(self) -> None:
        await self._control_plane.aclose()

    async def __aenter__(self) -> Database:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
