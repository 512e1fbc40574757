"""MongoDB helpers for reading CRM collections.

Centralizes creation of Mongo clients and the read-only loaders the CLI and
the dashboard use to fetch records and label lookup tables. Nothing here
writes to the database.
"""

from __future__ import annotations

import logging
from typing import Any

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

import certifi

log = logging.getLogger(__name__)

# Collections that back the label lookup tables used by the report pipeline.
LABEL_COLLECTIONS = {
    "clients": "clients",
    "team_members": "team_members",
}


def get_client(uri: str, tls: bool | None = None) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    Args:
        uri: MongoDB connection URI.
        tls: Force TLS on or off. Defaults to on for ``mongodb+srv://`` URIs.

    Returns:
        Configured MongoClient instance.
    """
    if tls is None:
        tls = uri.startswith("mongodb+srv://")
    options: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if tls:
        options.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **options)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient.

    Args:
        client: PyMongo MongoClient.
        db_name: Database name.

    Returns:
        A Database object.
    """
    return client[db_name]


def load_records(
    collection: Collection[dict[str, Any]],
    query: dict[str, Any] | None = None,
    batch_size: int = 5000,
) -> list[dict[str, Any]]:
    """Load every matching document of a collection as a plain record.

    Mongo's ``_id`` is dropped; CRM records carry their own ``id`` field.

    Args:
        collection: Source collection (e.g. ``db["donations"]``).
        query: Optional Mongo filter document.
        batch_size: Cursor batch size.

    Returns:
        List of record dicts in natural collection order.
    """
    cursor = collection.find(query or {}, {"_id": False}).batch_size(batch_size)
    records = [dict(doc) for doc in cursor]
    log.info("Loaded %d records from %s", len(records), collection.name)
    return records


def load_label_tables(
    db: Database[dict[str, Any]],
    id_field: str = "id",
    name_field: str = "name",
) -> dict[str, dict[str, str]]:
    """Build id → name lookup tables from the clients and team member collections.

    Documents missing an id or a name are skipped.
    """
    tables: dict[str, dict[str, str]] = {}
    for table, collection_name in LABEL_COLLECTIONS.items():
        lookup: dict[str, str] = {}
        for doc in db[collection_name].find({}, {"_id": False, id_field: True, name_field: True}):
            key, name = doc.get(id_field), doc.get(name_field)
            if key is None or not name:
                continue
            lookup[str(key)] = str(name)
        tables[table] = lookup
    return tables
