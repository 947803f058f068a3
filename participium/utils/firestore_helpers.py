"""
Firestore query and document helpers shared by the services.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "status", "==", "pending")
        query = where_filter(query, "category_id", "==", category_id)
    """
    return query.where(field_path, op_string, value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse stored timestamp values to timezone-aware datetime (UTC).

    All datetimes must be timezone-aware to keep comparisons valid.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if hasattr(value, "to_datetime"):
        dt = value.to_datetime()
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    return None


def doc_to_dict(doc) -> Optional[Dict[str, Any]]:
    """
    Convert a Firestore snapshot to a plain dict carrying its document id.

    Returns None for snapshots of missing documents.
    """
    if doc is None or not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def get_document(db, collection: str, doc_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """Fetch a single document by id; None when the id is empty or the document is missing."""
    if not doc_id:
        return None
    return doc_to_dict(db.collection(collection).document(doc_id).get())
