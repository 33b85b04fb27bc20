"""Shared pytest fixtures for mongodb_lens tests."""

import pytest
from unittest.mock import MagicMock

from mongodb_lens.get_schema import infer_schema
from mongodb_lens.models import FieldStatistic, SchemaSnapshot, TypeTag


def make_stat(path, types, count, sample_size=100, example=None):
    """Build a FieldStatistic with coverage derived from count and sample size."""
    return FieldStatistic(
        path=path,
        observed_types=frozenset(types),
        occurrence_count=count,
        coverage_percent=round(100 * count / sample_size),
        example_value=example,
    )


def make_snapshot(name, stats, sample_size=100):
    """Build a SchemaSnapshot from a list of FieldStatistic."""
    return SchemaSnapshot(
        collection_name=name,
        sample_size=sample_size,
        fields={stat.path: stat for stat in stats},
    )


def make_database(collections, name="shop"):
    """
    Build a MagicMock pymongo Database.

    ``collections`` maps collection names to MagicMock collections; indexing
    the database with any other name returns a fresh MagicMock.
    """
    database = MagicMock()
    database.name = name
    database.list_collection_names.return_value = [n for n in collections if not n.startswith("system.")]
    database.__getitem__.side_effect = lambda key: collections.get(key, MagicMock())
    return database


@pytest.fixture
def people_documents():
    """Sample with heterogeneous 'age' types and one missing 'age'."""
    return [
        {"name": "A", "age": 30},
        {"name": "B", "age": "thirty"},
        {"name": "C"},
        {"name": "D", "age": 25},
    ]


@pytest.fixture
def people_snapshot(people_documents):
    return infer_schema("people", people_documents)


@pytest.fixture
def order_documents():
    """Documents with nested objects and arrays of objects."""
    return [
        {
            "orderId": "o-1",
            "customer": {"email": "a@example.com", "address": {"city": "Oslo"}},
            "items": [{"sku": "X1", "qty": 2}, {"sku": "X2", "qty": 1, "gift": True}],
            "tags": ["new", "priority"],
            "status": "open",
        },
        {
            "orderId": "o-2",
            "customer": {"email": None},
            "items": [],
            "tags": [],
            "status": "closed",
        },
    ]


@pytest.fixture
def orders_collection(order_documents):
    collection = MagicMock()
    collection.name = "orders"
    collection.aggregate.return_value = order_documents
    return collection


@pytest.fixture
def shop_database(orders_collection):
    return make_database({"orders": orders_collection})
