"""Table compiler — table schema → table definition → PostgreSQL DDL.

Every compiled table gets a leading ``id`` UUID primary key and trailing
``created_at`` / ``updated_at`` timestamps. The rendered DDL is safe to
re-issue against an already provisioned namespace:

    CREATE TABLE IF NOT EXISTS "orders" (
        "id" UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        "user_id" TEXT NOT NULL,
        "created_at" TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        "updated_at" TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        CONSTRAINT "fk_orders_user_id" FOREIGN KEY ("user_id") REFERENCES "users" ("id")
    );

    CREATE INDEX IF NOT EXISTS "idx_orders_user_id" ON "orders" ("user_id");

followed by the ``updated_at`` trigger.
"""

from __future__ import annotations

import re

from tenantdb.models.ddl import (
    ColumnDefinition,
    ColumnType,
    ConstraintDefinition,
    ConstraintType,
    IndexDefinition,
    TableDefinition,
)
from tenantdb.models.schema import PRIMARY_KEY_COLUMN, TIMESTAMP_COLUMNS, TableSchema
from tenantdb.services.relationships import reference_for
from tenantdb.services.type_mapping import map_field

_UNSAFE_IDENTIFIER_CHARS = re.compile(r"[^a-zA-Z0-9_]")

UPDATED_AT_FUNCTION = "update_updated_at_column"

ID_COLUMN = ColumnDefinition(
    name=PRIMARY_KEY_COLUMN,
    type=ColumnType.UUID,
    nullable=False,
    default="gen_random_uuid()",
    primary_key=True,
)


def _timestamp_column(name: str) -> ColumnDefinition:
    return ColumnDefinition(
        name=name,
        type=ColumnType.TIMESTAMPTZ,
        nullable=False,
        default="NOW()",
    )


def compile_table(table_name: str, table_schema: TableSchema) -> TableDefinition:
    columns: list[ColumnDefinition] = [ID_COLUMN]
    indexes: list[IndexDefinition] = []
    constraints: list[ConstraintDefinition] = []

    for field_name, field in table_schema.items():
        # Declared standard columns are already covered
        if field_name == PRIMARY_KEY_COLUMN or field_name in TIMESTAMP_COLUMNS:
            continue

        column = map_field(field_name, field)
        columns.append(column)

        if column.index:
            indexes.append(IndexDefinition(
                name=f"idx_{table_name}_{field_name}",
                columns=(field_name,),
            ))

        reference = reference_for(field_name)
        if reference is not None:
            constraints.append(ConstraintDefinition(
                name=f"fk_{table_name}_{field_name}",
                type=ConstraintType.FOREIGN_KEY,
                definition=(
                    f"FOREIGN KEY ({quote_ident(field_name)}) "
                    f"REFERENCES {quote_ident(reference.table)} ({quote_ident(reference.column)})"
                ),
            ))

    columns.extend(_timestamp_column(name) for name in TIMESTAMP_COLUMNS)

    return TableDefinition(
        name=table_name,
        columns=tuple(columns),
        indexes=tuple(indexes),
        constraints=tuple(constraints),
    )


def render_column(column: ColumnDefinition) -> str:
    parts = [quote_ident(column.name), column.sql_type]
    if column.primary_key:
        parts.append("PRIMARY KEY")
    elif not column.nullable:
        parts.append("NOT NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {column.default}")
    if column.unique and not column.primary_key:
        parts.append("UNIQUE")
    return " ".join(parts)


def render_ddl(table: TableDefinition) -> str:
    """Render idempotent DDL: table, constraints, indexes, updated_at trigger."""
    table_ident = quote_ident(table.name)

    lines = [render_column(col) for col in table.columns]
    lines.extend(
        f"CONSTRAINT {quote_ident(c.name)} {c.definition}" for c in table.constraints
    )
    body = ",\n    ".join(lines)
    sql = f"CREATE TABLE IF NOT EXISTS {table_ident} (\n    {body}\n);"

    if table.indexes:
        statements = []
        for index in table.indexes:
            unique = "UNIQUE " if index.unique else ""
            cols = ", ".join(quote_ident(c) for c in index.columns)
            statements.append(
                f"CREATE {unique}INDEX IF NOT EXISTS {quote_ident(index.name)} "
                f"ON {table_ident} ({cols});"
            )
        sql += "\n\n" + "\n".join(statements)

    trigger = f"update_{table.name}_updated_at"
    sql += (
        "\n\n-- Keep updated_at current on every row update\n"
        f"CREATE OR REPLACE FUNCTION {UPDATED_AT_FUNCTION}()\n"
        "RETURNS TRIGGER AS $$\n"
        "BEGIN\n"
        "    NEW.updated_at = NOW();\n"
        "    RETURN NEW;\n"
        "END;\n"
        "$$ LANGUAGE plpgsql;\n"
        "\n"
        f"DROP TRIGGER IF EXISTS {quote_ident(trigger)} ON {table_ident};\n"
        f"CREATE TRIGGER {quote_ident(trigger)}\n"
        f"    BEFORE UPDATE ON {table_ident}\n"
        f"    FOR EACH ROW EXECUTE FUNCTION {UPDATED_AT_FUNCTION}();"
    )
    return sql


def to_ddl(table_name: str, table_schema: TableSchema) -> str:
    return render_ddl(compile_table(table_name, table_schema))


def namespace_for(app_id: str, company_id: str | None) -> str:
    """Tenant namespace, e.g. ``("My-App", "c1")`` → ``app_my_app_company_c1``."""
    clean_app = _UNSAFE_IDENTIFIER_CHARS.sub("_", app_id).lower()
    clean_company = _UNSAFE_IDENTIFIER_CHARS.sub("_", company_id or "unknown")
    return f"app_{clean_app}_company_{clean_company}"


def render_create_namespace(namespace: str) -> str:
    return f"CREATE SCHEMA IF NOT EXISTS {quote_ident(namespace)};"


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'
