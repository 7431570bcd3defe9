"""Database facade tests."""

import logging

import pytest

from tenantdb import Database, SchemaValidationError, define
from tenantdb.models import fields as f
from tenantdb.services.table_operations import TableOperations


@pytest.mark.asyncio
async def test_tables_by_attribute_and_key(db: Database):
    assert isinstance(db.users, TableOperations)
    assert db.users is db.tables["users"]
    assert db["orders"] is db.tables["orders"]
    assert sorted(db.tables) == ["orders", "users"]


@pytest.mark.asyncio
async def test_unknown_table_attribute(db: Database):
    with pytest.raises(AttributeError, match="comments"):
        _ = db.comments


@pytest.mark.asyncio
async def test_namespace(db: Database):
    assert db.namespace == "app_demo_app_company_acme"


@pytest.mark.asyncio
async def test_provision_all(db: Database, fake):
    await db.provision_all()

    assert fake.count("ensure-table") == 2
    assert sorted(db.provisioning.provisioned_tables()) == ["orders", "users"]

    await db.provision_all()
    assert fake.count("check-table") == 2


@pytest.mark.asyncio
async def test_debug_lowers_package_log_level(settings, http_client):
    package_logger = logging.getLogger("tenantdb")
    previous = package_logger.level
    try:
        debug_settings = settings.model_copy(update={"debug": True})
        async with Database(define(notes={"body": f.string()}), debug_settings, http_client=http_client):
            assert package_logger.level == logging.DEBUG
    finally:
        package_logger.setLevel(previous)


@pytest.mark.asyncio
async def test_end_to_end_users(db: Database, fake):
    record = await db.users.insert({"name": "John", "email": "j@x.com", "role": "user"})
    assert record["id"]

    ddl = fake.ddl["app_demo_app_company_acme.users"]
    assert '"name" VARCHAR(100) NOT NULL' in ddl
    assert '"lastActive" TIMESTAMP WITH TIME ZONE,' in ddl
    assert 'CREATE INDEX IF NOT EXISTS "idx_users_name"' in ddl
    assert 'CREATE INDEX IF NOT EXISTS "idx_users_email"' in ddl

    calls_before = len(fake.calls)
    with pytest.raises(SchemaValidationError):
        await db.users.insert({"email": "j@x.com", "role": "user"})
    assert len(fake.calls) == calls_before
