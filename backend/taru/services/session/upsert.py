import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from taru.models.progress import ProgressStatus

logger = logging.getLogger(__name__)


def merge_status(
    current: Optional[str], requested: Optional[str]
) -> Optional[str]:
    """Progress status only moves forward: not-started, in-progress, completed."""
    if requested is None:
        return current
    requested_status = ProgressStatus(requested)
    try:
        current_status = ProgressStatus(current) if current else None
    except ValueError:
        current_status = None

    if current_status is not None and requested_status.rank < current_status.rank:
        logger.info(
            f"Ignoring status regression {current_status.value} -> "
            f"{requested_status.value}"
        )
        return current_status.value
    return requested_status.value


def merge_entry(
    existing: Optional[Dict[str, Any]],
    key: str,
    value: str,
    fields: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Merge `fields` into one progress element, creating it when absent."""
    now = now or datetime.now()
    if existing is None:
        entry = {
            key: value,
            "status": ProgressStatus.not_started.value,
            "progress": 0,
        }
    else:
        entry = dict(existing)

    for name, field_value in fields.items():
        if name in (key, "status"):
            continue
        entry[name] = field_value
    entry[key] = value
    entry["status"] = merge_status(entry.get("status"), fields.get("status"))

    if entry["status"] != ProgressStatus.not_started.value and not entry.get(
        "startedAt"
    ):
        entry["startedAt"] = now
    if entry["status"] == ProgressStatus.completed.value and not entry.get(
        "completedAt"
    ):
        entry["completedAt"] = now
    return entry


def upsert_by_key(
    items: Optional[List[Dict[str, Any]]],
    key: str,
    value: str,
    fields: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Replace-or-append the element whose `key` equals `value`.

    Returns a new list plus the merged element. Other elements keep their
    order; any duplicates of `value` left by older writers are collapsed
    into the first occurrence.
    """
    result: List[Dict[str, Any]] = []
    merged: Optional[Dict[str, Any]] = None

    for item in items or []:
        if item.get(key) != value:
            result.append(item)
        elif merged is None:
            merged = merge_entry(item, key, value, fields, now)
            result.append(merged)

    if merged is None:
        merged = merge_entry(None, key, value, fields, now)
        result.append(merged)
    return result, merged


def find_by_key(
    items: Optional[List[Dict[str, Any]]], key: str, value: str
) -> Optional[Dict[str, Any]]:
    for item in items or []:
        if item.get(key) == value:
            return item
    return None
