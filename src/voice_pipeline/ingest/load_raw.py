"""Raw-record snapshot store.

Fetched Bitable rows can be upserted into the `raw_records` MongoDB
collection so the CLI can aggregate offline. Rows are keyed by
``(endpoint, record_id)`` and written in batches.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List

from pymongo import UpdateOne
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from voice_pipeline.models import RawRecord

log = logging.getLogger(__name__)

COLLECTION = "raw_records"
BATCH_SIZE = 1000


def _chunks(items: List[Any], size: int) -> Iterable[List[Any]]:
    """Yield consecutive slices of `items` of length `size`."""
    for i in range(0, len(items), size):
        yield items[i : i + size]


def snapshot_records(
    collection: Collection[dict[str, Any]],
    endpoint: str,
    records: Iterable[dict[str, Any]],
) -> tuple[int, int]:
    """Upsert raw rows for `endpoint` into `collection`.

    Rows without ``record_id`` fall back to ``id``; rows with neither are
    skipped.

    Returns:
        Tuple ``(written, skipped)``.
    """
    ingest_ts = datetime.now(timezone.utc)
    ops: list[UpdateOne] = []
    skipped = 0

    for rec in records:
        rid = rec.get("record_id") or rec.get("id")
        if not rid:
            skipped += 1
            continue
        rid = str(rid)
        doc = {
            "endpoint": endpoint,
            "record_id": rid,
            "id": rec.get("id"),
            "fields": rec.get("fields") or {},
            "ingest_ts": ingest_ts,
        }
        ops.append(UpdateOne({"endpoint": endpoint, "record_id": rid}, {"$set": doc}, upsert=True))

    written = 0
    for batch in _chunks(ops, BATCH_SIZE):
        try:
            collection.bulk_write(batch, ordered=False)
            written += len(batch)
        except PyMongoError as e:
            log.warning("Snapshot batch failed for %s: %s", endpoint, e)

    log.info("Snapshot %s: written=%d skipped=%d", endpoint, written, skipped)
    return written, skipped


def load_snapshot(collection: Collection[dict[str, Any]], endpoint: str) -> list[RawRecord]:
    """Return the stored rows of `endpoint` as `RawRecord`s."""
    docs = collection.find({"endpoint": endpoint}, {"_id": False, "endpoint": False, "ingest_ts": False})
    out = [RawRecord.model_validate(d) for d in docs]
    log.info("Loaded %d snapshot records for %s", len(out), endpoint)
    return out
