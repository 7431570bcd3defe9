"""Control-plane client tests — wire format, retries, transport errors."""

import httpx
import pytest

from tenantdb.core.config import Mode, Settings
from tenantdb.core.errors import ProvisioningError, TransportError
from tenantdb.models.query import Operation
from tenantdb.services.control_plane import ControlPlaneClient


def _settings(**overrides) -> Settings:
    values = {
        "_env_file": None,
        "app_id": "demo-app",
        "company_id": "acme",
        "api_base_url": "http://control.test",
        "retry_max_attempts": 3,
        "retry_backoff_ms": 0,
    }
    values.update(overrides)
    return Settings(**values)


def _client(handler, **overrides) -> tuple[ControlPlaneClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request):
        seen.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return ControlPlaneClient(_settings(**overrides), http), seen


@pytest.mark.asyncio
async def test_headers_are_sent(control_plane, fake):
    await control_plane.check_table("ns", "users")

    headers = fake.last("check-table")["headers"]
    assert headers["x-metricshub-app-id"] == "demo-app"
    assert headers["x-metricshub-company-id"] == "acme"
    assert headers["x-metricshub-api-key"] == "key-123"
    assert headers["authorization"] == "Bearer company-token"


@pytest.mark.asyncio
async def test_mode_is_part_of_the_url():
    client, seen = _client(
        lambda r: httpx.Response(200, json={"data": {"exists": True}}),
        mode=Mode.DEVELOPMENT,
    )

    assert await client.check_table("ns", "users") is True
    assert str(seen[0].url) == "http://control.test/api/proxy/sdk/development/check-table"


@pytest.mark.asyncio
async def test_check_table_reads_top_level_exists():
    client, _ = _client(lambda r: httpx.Response(200, json={"success": True, "exists": True}))
    assert await client.check_table("ns", "users") is True


@pytest.mark.asyncio
async def test_optional_credentials_are_omitted():
    client, seen = _client(lambda r: httpx.Response(200, json={"success": True}), company_id="")

    await client.ensure_schema("ns")

    assert "authorization" not in seen[0].headers
    assert "x-metricshub-api-key" not in seen[0].headers
    assert "x-metricshub-company-id" not in seen[0].headers


@pytest.mark.asyncio
async def test_connection_errors_become_transport_errors_and_are_retried():
    def _refuse(request):
        raise httpx.ConnectError("refused", request=request)

    client, seen = _client(_refuse)

    with pytest.raises(TransportError):
        await client.check_table("ns", "users")
    assert len(seen) == 3


@pytest.mark.asyncio
async def test_timeouts_become_transport_errors():
    def _slow(request):
        raise httpx.ReadTimeout("slow", request=request)

    client, _ = _client(_slow, retry_max_attempts=1)

    with pytest.raises(TransportError, match="Timed out"):
        await client.ensure_schema("ns")


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    client, seen = _client(lambda r: httpx.Response(422, json={"success": False, "error": "bad ddl"}))

    with pytest.raises(ProvisioningError, match="bad ddl"):
        await client.ensure_table("ns", "users", "CREATE TABLE ...", {})
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_queries_are_sent_once():
    client, seen = _client(lambda r: httpx.Response(503, text="unavailable"))

    response = await client.query("ns", "users", Operation.SELECT, {})

    assert response.success is False
    assert response.status_code == 503
    assert response.error == "HTTP 503"
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_query_transport_error_is_not_retried():
    def _refuse(request):
        raise httpx.ConnectError("refused", request=request)

    client, seen = _client(_refuse)

    with pytest.raises(TransportError):
        await client.query("ns", "users", Operation.INSERT, {"data": {}})
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_query_body(control_plane, fake):
    fake.create_table("users")

    await control_plane.query("app_demo_app_company_acme", "users", Operation.SELECT, {"limit": 5})

    assert fake.last("query")["body"] == {
        "namespace": "app_demo_app_company_acme",
        "tableName": "users",
        "operation": "select",
        "options": {"limit": 5},
    }


@pytest.mark.asyncio
async def test_malformed_response_is_a_failure():
    client, _ = _client(lambda r: httpx.Response(200, json={"success": "maybe", "error": {"code": 1}}))

    response = await client.query("ns", "users", Operation.SELECT, {})

    assert response.success is False
    assert response.error == "Malformed control plane response"
