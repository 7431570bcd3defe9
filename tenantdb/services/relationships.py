"""Naming conventions that imply indexes and foreign keys.

Kept apart from type mapping so explicit annotations could replace them
without touching the compiler.
"""

from __future__ import annotations

from tenantdb.models.ddl import Reference

RELATIONSHIP_SUFFIX = "_id"

# Common lookup columns that always get an index
INDEXED_FIELD_NAMES = frozenset({
    "email",
    "name",
    "status",
    "type",
    "category",
    "user_id",
    "company_id",
})

# The companies table lives outside tenant namespaces
_FIXED_REFERENCES = {
    "company_id": Reference(table="companies", column="id"),
}

_ES_SUFFIXES = ("s", "sh", "ch", "x", "z")


def pluralize(singular: str) -> str:
    """Four-rule English plural. Irregular plurals are not handled."""
    if singular.endswith("y"):
        return singular[:-1] + "ies"
    if singular.endswith(_ES_SUFFIXES):
        return singular + "es"
    return singular + "s"


def is_relationship(field_name: str) -> bool:
    return field_name != "id" and field_name.endswith(RELATIONSHIP_SUFFIX)


def reference_for(field_name: str) -> Reference | None:
    """Infer the table a ``*_id`` column points at, e.g. ``user_id`` → ``users.id``."""
    if field_name in _FIXED_REFERENCES:
        return _FIXED_REFERENCES[field_name]
    if not is_relationship(field_name):
        return None
    stripped = field_name[: -len(RELATIONSHIP_SUFFIX)]
    if not stripped:
        return None
    return Reference(table=pluralize(stripped), column="id")


def should_index(field_name: str) -> bool:
    return field_name in INDEXED_FIELD_NAMES or is_relationship(field_name)
