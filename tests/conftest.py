"""Shared test fixtures — in-memory fake control plane + wired clients."""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from tenantdb import Database, define
from tenantdb.core.config import Settings
from tenantdb.models import fields as f
from tenantdb.services.control_plane import ControlPlaneClient
from tenantdb.services.provisioning import ProvisioningManager

NAMESPACE = "app_demo_app_company_acme"


class FakeControlPlane:
    """Stands in for the remote storage service and records every call."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.namespaces: set[str] = set()
        self.tables: dict[str, list[dict]] = {}
        self.ddl: dict[str, str] = {}
        self.descriptors: dict[str, dict] = {}
        self.failures: dict[str, list[int]] = {}
        self.gate: asyncio.Event | None = None
        self.app = self._build_app()

    # ── Test helpers ─────────────────────────────────────────

    def fail(self, endpoint: str, *statuses: int) -> None:
        """Answer the next calls to ``endpoint`` with these error statuses."""
        self.failures.setdefault(endpoint, []).extend(statuses)

    def count(self, endpoint: str) -> int:
        return sum(1 for c in self.calls if c["endpoint"] == endpoint)

    def last(self, endpoint: str) -> dict:
        return [c for c in self.calls if c["endpoint"] == endpoint][-1]

    def endpoints(self) -> list[str]:
        return [c["endpoint"] for c in self.calls]

    def create_table(self, table_name: str, rows: list[dict] | None = None) -> None:
        self.namespaces.add(NAMESPACE)
        self.tables[f"{NAMESPACE}.{table_name}"] = list(rows or [])

    # ── App ──────────────────────────────────────────────────

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.post("/api/proxy/sdk/{mode}/{endpoint}")
        async def handle(mode: str, endpoint: str, request: Request):
            body = await request.json()
            self.calls.append({
                "mode": mode,
                "endpoint": endpoint,
                "body": body,
                "headers": dict(request.headers),
            })

            pending = self.failures.get(endpoint)
            if pending:
                status = pending.pop(0)
                return JSONResponse({"success": False, "error": "injected failure"}, status_code=status)

            if endpoint == "check-table":
                key = f"{body['namespace']}.{body['tableName']}"
                return {"success": True, "data": {"exists": key in self.tables}}
            if endpoint == "ensure-schema":
                self.namespaces.add(body["namespace"])
                return {"success": True}
            if endpoint == "ensure-table":
                if self.gate is not None:
                    await self.gate.wait()
                if body["namespace"] not in self.namespaces:
                    return JSONResponse({"success": False, "error": "schema missing"}, status_code=400)
                key = f"{body['namespace']}.{body['tableName']}"
                self.tables.setdefault(key, [])
                self.ddl[key] = body["ddl"]
                self.descriptors[key] = body["schemaDescriptor"]
                return {"success": True}
            if endpoint == "query":
                return self._query(body)
            return JSONResponse({"success": False, "error": "unknown endpoint"}, status_code=404)

        return app

    def _query(self, body: dict):
        key = f"{body['namespace']}.{body['tableName']}"
        if key not in self.tables:
            return JSONResponse({"success": False, "error": f"relation {key} does not exist"}, status_code=404)

        rows = self.tables[key]
        options = body["options"]
        operation = body["operation"]

        if operation == "insert":
            items = options["data"] if options.get("multiple") else [options["data"]]
            created = []
            for item in items:
                now = datetime.now(timezone.utc).isoformat()
                row = {"id": str(uuid.uuid4()), **item, "created_at": now, "updated_at": now}
                rows.append(row)
                created.append(row)
            return {"success": True, "data": created if options.get("multiple") else created[0]}

        matched = [r for r in rows if _matches(r, options.get("where") or [])]

        if operation == "select":
            if options.get("count"):
                return {"success": True, "data": {"count": len(matched)}}
            for order in reversed(options.get("orderBy") or []):
                matched.sort(key=lambda r: r.get(order["column"]), reverse=order["direction"] == "desc")
            offset = options.get("offset") or 0
            limit = options.get("limit")
            window = matched[offset:offset + limit] if limit is not None else matched[offset:]
            return {"success": True, "data": window}

        if operation == "update":
            for row in matched:
                row.update(options["data"])
            if options.get("returnAll"):
                return {"success": True, "data": matched}
            return {"success": True, "data": matched[0] if matched else None}

        if operation == "delete":
            for row in matched:
                rows.remove(row)
            if options.get("returnCount"):
                return {"success": True, "data": {"deletedCount": len(matched)}}
            if not matched:
                return {"success": False, "error": "no rows deleted"}
            return {"success": True}

        return JSONResponse({"success": False, "error": f"bad operation {operation}"}, status_code=400)


def _matches(row: dict, conditions: list[dict]) -> bool:
    for cond in conditions:
        value = row.get(cond["column"])
        expected = cond.get("value")
        op = cond.get("operator", "eq")
        if op == "eq" and value != expected:
            return False
        if op == "neq" and value == expected:
            return False
        if op == "in" and value not in expected:
            return False
        if op == "gt" and not (value is not None and value > expected):
            return False
        if op == "lt" and not (value is not None and value < expected):
            return False
    return True


# ── Fixtures ─────────────────────────────────────────────────

@pytest.fixture
def fake() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
async def http_client(fake) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=fake.app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        app_id="demo-app",
        company_id="acme",
        company_token="company-token",
        api_key="key-123",
        api_base_url="http://test",
        retry_max_attempts=3,
        retry_backoff_ms=0,
    )


@pytest.fixture
def schema():
    return define(
        users={
            "name": f.string(max_length=100),
            "email": f.string(),
            "role": f.enum("admin", "user"),
            "lastActive": f.date().as_optional(),
        },
        orders={
            "user_id": f.string(uuid=True),
            "total": f.number(minimum=0),
            "paid": f.boolean().with_default(False),
        },
    )


@pytest.fixture
def control_plane(settings, http_client) -> ControlPlaneClient:
    return ControlPlaneClient(settings, http_client)


@pytest.fixture
def manager(control_plane, settings) -> ProvisioningManager:
    return ProvisioningManager(control_plane, settings.app_id, settings.company_id)


@pytest.fixture
async def db(schema, settings, http_client) -> AsyncGenerator[Database, None]:
    async with Database(schema, settings, http_client=http_client) as database:
        yield database
