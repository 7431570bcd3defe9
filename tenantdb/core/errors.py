"""Error taxonomy surfaced to callers of the storage client."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

# HTTP statuses the control plane uses for transient overload
_RETRYABLE_STATUS = 429
_SERVER_ERROR_FLOOR = 500


class TenantDBError(Exception):
    """Base error for tenantdb."""

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "context": self.context,
        }


@dataclass(frozen=True)
class Violation:
    """One failed constraint, addressed by its dotted field path."""

    path: str
    message: str
    kind: str = "invalid"


class SchemaValidationError(TenantDBError):
    """Payload rejected locally, before any network call."""

    def __init__(self, violations: list[Violation], *, table_name: str | None = None) -> None:
        self.violations = violations
        self.table_name = table_name
        details = ", ".join(f"{v.path}: {v.message}" for v in violations)
        super().__init__(
            f"Validation failed: {details}",
            status_code=400,
            context={"table_name": table_name},
        )

    @property
    def paths(self) -> list[str]:
        return [v.path for v in self.violations]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["violations"] = [asdict(v) for v in self.violations]
        return data


class SchemaDefinitionError(TenantDBError):
    """Malformed table schema, rejected when the schema is defined."""


class ProvisioningError(TenantDBError):
    """Namespace or table creation failed remotely."""

    def __init__(
        self,
        message: str,
        *,
        namespace: str,
        table_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            context={"namespace": namespace, "table_name": table_name},
        )
        self.namespace = namespace
        self.table_name = table_name


class QueryError(TenantDBError):
    """The query endpoint reported a failure."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        table_name: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            context={"operation": operation, "table_name": table_name},
        )
        self.operation = operation
        self.table_name = table_name


class TransportError(TenantDBError):
    """Network failure or timeout talking to the control plane."""

    retryable = True


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, TransportError):
        return True
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status >= _SERVER_ERROR_FLOOR or status == _RETRYABLE_STATUS
    return False
