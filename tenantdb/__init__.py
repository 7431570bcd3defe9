"""tenantdb — schema-driven tables in a tenant-scoped remote store."""

from tenantdb.client import Database
from tenantdb.core.config import Mode, Settings, get_settings
from tenantdb.core.errors import (
    ProvisioningError,
    QueryError,
    SchemaDefinitionError,
    SchemaValidationError,
    TenantDBError,
    TransportError,
    Violation,
)
from tenantdb.models import fields
from tenantdb.models.query import Operator, OrderBy, QueryOptions, WhereCondition, where
from tenantdb.models.schema import SchemaDefinition, TableSchema, define

__version__ = "0.1.0"

__all__ = [
    "Database",
    "Mode",
    "Operator",
    "OrderBy",
    "ProvisioningError",
    "QueryError",
    "QueryOptions",
    "SchemaDefinition",
    "SchemaDefinitionError",
    "SchemaValidationError",
    "Settings",
    "TableSchema",
    "TenantDBError",
    "TransportError",
    "Violation",
    "WhereCondition",
    "define",
    "fields",
    "get_settings",
    "where",
]
