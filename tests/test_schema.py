"""Tests for field builders and schema definitions."""

import pytest

from tenantdb import define
from tenantdb.core.errors import SchemaDefinitionError, SchemaValidationError
from tenantdb.models import fields as f
from tenantdb.models.schema import SchemaDefinition, TableSchema


def test_builders_are_immutable():
    base = f.string(max_length=10)
    optional = base.as_optional()

    assert base.optional is False
    assert optional.optional is True
    assert optional.max_length == 10


def test_with_default_switches_between_literal_and_deferred():
    field = f.date().with_default(f.NOW)
    assert field.has_default is True
    assert field.deferred_default == f.NOW
    assert field.default is None

    field = field.with_default("2024-01-01")
    assert field.deferred_default is None
    assert field.default == "2024-01-01"


def test_enum_accepts_iterable():
    assert f.enum(["a", "b"]).values == ("a", "b")
    assert f.enum("a", "b").values == ("a", "b")


def test_empty_enum_is_rejected():
    with pytest.raises(SchemaDefinitionError):
        f.enum()


def test_table_schema_is_an_ordered_mapping():
    table = TableSchema({"b": f.string()}, a=f.integer())
    assert list(table) == ["b", "a"]
    assert len(table) == 2
    assert table["a"].is_integer is True


def test_define_collects_tables():
    schema = define(users={"name": f.string()}, posts={"title": f.string()}, version=2)

    assert isinstance(schema, SchemaDefinition)
    assert schema.table_names() == ["users", "posts"]
    assert isinstance(schema.table("users"), TableSchema)
    assert schema.version == 2


def test_unknown_table():
    schema = define(users={"name": f.string()})
    with pytest.raises(SchemaDefinitionError, match="Unknown table"):
        schema.table("posts")


@pytest.mark.parametrize(
    "tables",
    [
        {"bad-name": {"title": f.string()}},
        {"posts": {"bad field": f.string()}},
        {"posts": {"id": f.integer()}},
        {"posts": {"created_at": f.string()}},
        {"posts": {"meta": "not a field"}},
    ],
)
def test_malformed_schemas_are_rejected(tables):
    with pytest.raises(SchemaDefinitionError):
        define(tables)


def test_declared_uuid_id_is_allowed():
    schema = define(posts={"id": f.string(uuid=True), "updated_at": f.date()})
    assert schema.table_names() == ["posts"]


def test_validate_table_data():
    schema = define(users={"name": f.string(), "role": f.enum("admin", "user")})

    assert schema.validate_table_data("users", {"name": "A", "role": "user"}) == {"name": "A", "role": "user"}
    with pytest.raises(SchemaValidationError) as exc_info:
        schema.validate_table_data("users", {"role": "user"})
    assert exc_info.value.paths == ["name"]


def test_to_serializable():
    schema = define(users=TableSchema({"name": f.string(max_length=50)}, description="People"))

    data = schema.to_serializable()

    assert data["version"] == 1
    assert data["tables"]["users"]["description"] == "People"
    assert data["tables"]["users"]["shape"]["name"]["maxLength"] == 50


@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_non_finite_default_is_rejected(value):
    with pytest.raises(SchemaDefinitionError, match="finite"):
        define(orders={"total": f.number().with_default(value)})
