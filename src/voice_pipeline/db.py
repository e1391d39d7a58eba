"""MongoDB helpers.

Centralizes creation of Mongo clients for the optional raw-record snapshot
store.
"""

from __future__ import annotations

from typing import Any

import certifi
from pymongo import MongoClient
from pymongo.database import Database


def get_client(uri: str) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    TLS with the certifi CA bundle is enabled for ``mongodb+srv://`` URIs
    (Atlas); plain local URIs connect without TLS.

    Args:
        uri: MongoDB connection URI.

    Returns:
        Configured MongoClient instance.
    """
    kwargs: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if uri.startswith("mongodb+srv://"):
        kwargs.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **kwargs)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient."""
    return client[db_name]
