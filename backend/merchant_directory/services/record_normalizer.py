"""Franchise record normalization.

The directory API does not commit to a field naming scheme: the same logical
field shows up as ``fid``, ``FID``, ``franchise_id`` or ``franchiseId``
depending on the endpoint and the age of the record. Each logical field is
therefore resolved from an ordered list of candidate keys, first non-empty
match wins, and anything unrecognizable normalizes to ``None`` instead of
raising.
"""

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Final

logger = logging.getLogger(__name__)

FID_KEYS: Final[list[str]] = ["fid", "FID", "franchise_id", "franchiseId", "id"]
FRANCHISE_NAME_KEYS: Final[list[str]] = ["name", "franchise_name", "franchiseName", "merchant_name", "merchantName"]
COMPANY_KEYS: Final[list[str]] = ["company", "company_name", "companyName"]
COMPANY_ADDRESS_KEYS: Final[list[str]] = ["company_address", "companyAddress"]
CREATED_AT_KEYS: Final[list[str]] = ["created_at", "createdAt"]
UPDATED_AT_KEYS: Final[list[str]] = ["updated_at", "updatedAt"]

OUTLET_ID_KEYS: Final[list[str]] = ["id", "oid", "outlet_id", "outletId", "outletID"]
OUTLET_NAME_KEYS: Final[list[str]] = ["name", "outlet_name", "outletName"]
OUTLET_ADDRESS_KEYS: Final[list[str]] = ["address", "address_line", "addressLine"]
OUTLET_MAPS_KEYS: Final[list[str]] = ["maps_url", "mapsUrl", "map_url", "mapUrl"]
VALID_UNTIL_KEYS: Final[list[str]] = ["valid_until", "validUntil"]

# Where a franchise payload keeps its outlets (first present key wins)
FRANCHISE_OUTLET_KEYS: Final[list[str]] = ["outlets", "outlet", "stores", "store", "locations", "branches"]
# Wrapper keys for an outlet container that is an object rather than a list
OUTLET_LIST_KEYS: Final[list[str]] = ["data", "outlets", "stores", "locations", "branches"]

# "+0800" -> "+08:00"; fromisoformat is not reliable with colon-less offsets
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def _clean_value(value: Any) -> str | None:
    """Return a stripped string for strings and finite numbers, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return str(int(value)) if value.is_integer() else str(value)
    return None


def pick_field(record: dict, keys: list[str]) -> str | None:
    """Return the first non-empty value among candidate keys, in priority order."""
    for key in keys:
        if key in record:
            value = _clean_value(record[key])
            if value:
                return value
    return None


def _decode_json(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Failed to decode embedded JSON value")
            return None
    return value


def parse_upstream_datetime(value: str | None) -> datetime | None:
    """Parse an upstream timestamp, tolerating ``+0800`` style offsets.

    Naive timestamps are assumed to be UTC. Returns None when the value is
    empty or cannot be parsed.
    """
    cleaned = (value or "").strip()
    if not cleaned:
        return None
    cleaned = _COMPACT_OFFSET.sub(r"\1:\2", cleaned)
    if cleaned.endswith(("Z", "z")):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_outlet_active(valid_until: str | None, now: datetime | None = None) -> bool:
    """An outlet is active unless its validity date parses and lies in the past.

    Unparseable dates count as active: over-counting beats hiding a live outlet.
    """
    parsed = parse_upstream_datetime(valid_until)
    if parsed is None:
        return True
    now = now or datetime.now(timezone.utc)
    return parsed >= now


def normalize_outlet(raw: Any) -> dict | None:
    """Normalize one outlet payload. Returns None if no field is recognizable."""
    if not isinstance(raw, dict):
        return None

    outlet = {
        "id": pick_field(raw, OUTLET_ID_KEYS),
        "name": pick_field(raw, OUTLET_NAME_KEYS),
        "address": pick_field(raw, OUTLET_ADDRESS_KEYS),
        "maps_url": pick_field(raw, OUTLET_MAPS_KEYS),
        "valid_until": pick_field(raw, VALID_UNTIL_KEYS),
        "created_at": pick_field(raw, CREATED_AT_KEYS),
        "updated_at": pick_field(raw, UPDATED_AT_KEYS),
    }
    if not any(outlet.values()):
        return None
    return outlet


def _normalize_outlet_items(items) -> list[dict]:
    return [outlet for outlet in map(normalize_outlet, items) if outlet]


def normalize_outlets(raw: Any) -> list[dict]:
    """Normalize an outlet container of any observed shape into a list."""
    raw = _decode_json(raw)
    if not raw:
        return []
    if isinstance(raw, list):
        return _normalize_outlet_items(raw)
    if isinstance(raw, dict):
        for key in OUTLET_LIST_KEYS:
            if isinstance(raw.get(key), list):
                return _normalize_outlet_items(raw[key])
        direct = normalize_outlet(raw)
        if direct:
            return [direct]
        # Keyed by outlet id: {"12": {...}, "13": {...}}
        if any(isinstance(value, dict) for value in raw.values()):
            return _normalize_outlet_items(raw.values())
    return []


def _raw_outlets(record: dict) -> Any:
    for key in FRANCHISE_OUTLET_KEYS:
        if record.get(key) is not None:
            return record[key]
    return None


def normalize_franchise(raw: Any, now: datetime | None = None) -> dict | None:
    """Normalize one franchise payload into cache record fields.

    Returns None when the payload carries no recognizable franchise field and
    no outlets, so garbage rows never reach the cache.
    """
    record = _decode_json(raw)
    if not isinstance(record, dict):
        return None

    outlets = normalize_outlets(_raw_outlets(record))
    franchise = {
        "fid": pick_field(record, FID_KEYS),
        "name": pick_field(record, FRANCHISE_NAME_KEYS),
        "company": pick_field(record, COMPANY_KEYS),
        "company_address": pick_field(record, COMPANY_ADDRESS_KEYS),
        "source_created_at": pick_field(record, CREATED_AT_KEYS),
        "source_updated_at": pick_field(record, UPDATED_AT_KEYS),
    }
    if not any(franchise.values()) and not outlets:
        return None

    now = now or datetime.now(timezone.utc)
    franchise["outlets"] = outlets
    franchise["outlet_count"] = len(outlets)
    franchise["active_outlet_count"] = sum(
        1 for outlet in outlets if is_outlet_active(outlet["valid_until"], now)
    )
    return franchise
