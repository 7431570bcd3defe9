"""Control-plane client — HTTP calls to the remote storage service.

Endpoints (all ``POST {api_base_url}/api/proxy/sdk/{mode}/<endpoint>``):

    check-table    {namespace, tableName}                     → {data: {exists}}
    ensure-schema  {namespace, appId, companyId}              → {success, error?}
    ensure-table   {namespace, tableName, ddl, schemaDescriptor} → {success, error?}
    query          {namespace, tableName, operation, options} → {success, data?, error?}

The three provisioning calls are idempotent and retried under the configured
policy. Queries are sent exactly once.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from tenantdb.core.config import Settings
from tenantdb.core.errors import ProvisioningError, TransportError
from tenantdb.core.resilience import RetryPolicy, default_retry_policy, retry_async
from tenantdb.models.query import ApiResponse, Operation

logger = logging.getLogger(__name__)


class ControlPlaneClient:
    """Thin async wrapper over ``httpx.AsyncClient`` for the control plane."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.request_timeout_s)
        self._retry_policy = retry_policy or default_retry_policy(settings)

    @property
    def settings(self) -> Settings:
        return self._settings

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ControlPlaneClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ── Endpoints ────────────────────────────────────────────

    async def check_table(self, namespace: str, table_name: str) -> bool:
        async def _call() -> ApiResponse:
            response = await self._post("check-table", {
                "namespace": namespace,
                "tableName": table_name,
            })
            if response.status_code is not None and response.status_code >= 400:
                raise ProvisioningError(
                    f"Failed to check table {table_name}: {response.error}",
                    namespace=namespace,
                    table_name=table_name,
                    status_code=response.status_code,
                )
            return response

        response = await retry_async(
            _call, policy=self._retry_policy, label=f"check-table {namespace}.{table_name}"
        )
        data = response.data if isinstance(response.data, dict) else {}
        if "exists" in data:
            return bool(data["exists"])
        return bool((response.model_extra or {}).get("exists", False))

    async def ensure_schema(self, namespace: str) -> None:
        async def _call() -> None:
            response = await self._post("ensure-schema", {
                "namespace": namespace,
                "appId": self._settings.app_id,
                "companyId": self._settings.company_id,
            })
            if not response.success:
                raise ProvisioningError(
                    f"Failed to create namespace {namespace}: {response.error}",
                    namespace=namespace,
                    status_code=response.status_code,
                )

        await retry_async(_call, policy=self._retry_policy, label=f"ensure-schema {namespace}")

    async def ensure_table(
        self,
        namespace: str,
        table_name: str,
        ddl: str,
        schema_descriptor: dict[str, Any],
    ) -> None:
        async def _call() -> None:
            response = await self._post("ensure-table", {
                "namespace": namespace,
                "tableName": table_name,
                "ddl": ddl,
                "schemaDescriptor": schema_descriptor,
            })
            if not response.success:
                raise ProvisioningError(
                    f"Failed to create table {table_name}: {response.error}",
                    namespace=namespace,
                    table_name=table_name,
                    status_code=response.status_code,
                )

        await retry_async(
            _call, policy=self._retry_policy, label=f"ensure-table {namespace}.{table_name}"
        )

    async def query(
        self,
        namespace: str,
        table_name: str,
        operation: Operation,
        options: dict[str, Any],
    ) -> ApiResponse:
        return await self._post("query", {
            "namespace": namespace,
            "tableName": table_name,
            "operation": str(operation),
            "options": options,
        })

    # ── Transport ────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-MetricsHub-App-ID": self._settings.app_id,
        }
        if self._settings.company_token:
            headers["Authorization"] = f"Bearer {self._settings.company_token}"
        if self._settings.api_key:
            headers["X-MetricsHub-API-Key"] = self._settings.api_key
        if self._settings.company_id:
            headers["X-MetricsHub-Company-ID"] = self._settings.company_id
        return headers

    async def _post(self, endpoint: str, body: dict[str, Any]) -> ApiResponse:
        url = self._settings.endpoint_url(endpoint)
        try:
            resp = await self._client.post(
                url,
                json=body,
                headers=self._headers(),
                timeout=self._settings.request_timeout_s,
            )
        except httpx.TimeoutException as exc:
            logger.debug("Control plane call to %s timed out", endpoint)
            raise TransportError(
                f"Timed out calling {endpoint}", context={"endpoint": endpoint}
            ) from exc
        except httpx.TransportError as exc:
            logger.debug("Control plane call to %s failed: %s", endpoint, exc)
            raise TransportError(
                f"Could not reach control plane for {endpoint}: {exc}",
                context={"endpoint": endpoint},
            ) from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"success": resp.is_success, "data": payload}

        try:
            response = ApiResponse.model_validate(payload)
        except ValidationError:
            response = ApiResponse(success=False, error="Malformed control plane response")
        response.status_code = resp.status_code
        if resp.is_error:
            response.success = False
            response.error = response.error or f"HTTP {resp.status_code}"
        return response
