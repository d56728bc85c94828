"""Franchise directory API client.

The directory exposes a login endpoint and a ``franchise-retrieve`` resource
that serves both paginated listings and single franchise/outlet lookups.
Every call carries the bearer token both as a header and as the ``api_token``
query parameter; the lookup endpoint has been seen to insist on the latter.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Final

import httpx

from merchant_directory.config import get_settings
from merchant_directory.services.record_normalizer import parse_upstream_datetime
from merchant_directory.services.token_cache import AuthToken, TokenCache, get_token_cache

logger = logging.getLogger(__name__)

LOGIN_PATH: Final[str] = "/api/login"
FRANCHISE_PATH: Final[str] = "/api/franchise-retrieve/"

FRANCHISE_LIST_KEYS: Final[list[str]] = ["data", "results", "franchises"]
TOTAL_COUNT_KEYS: Final[list[str]] = ["total", "total_count", "count"]
CURRENT_PAGE_KEYS: Final[list[str]] = ["current_page", "page"]
TOTAL_PAGES_KEYS: Final[list[str]] = ["last_page", "total_pages", "totalPages"]

DEFAULT_PER_PAGE = 25


@dataclass
class FranchisePage:
    """One page of raw franchise rows plus whatever metadata the API reported."""

    rows: list[Any] = field(default_factory=list)
    current_page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    total_count: int | None = None
    total_pages: int | None = None


@dataclass
class OutletLookup:
    """Result of a live single franchise/outlet lookup."""

    franchise_name: str | None = None
    outlet_name: str | None = None
    found: bool = False


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except (ValueError, OverflowError):
            return None
    return None


def _first_int(meta: dict | None, keys: list[str]) -> int | None:
    if not meta:
        return None
    for key in keys:
        value = _to_int(meta.get(key))
        if value is not None:
            return value
    return None


def extract_franchise_rows(payload: Any) -> tuple[list[Any], dict | None]:
    """Split a list payload into its rows and the metadata object around them."""
    if isinstance(payload, list):
        return payload, None
    if isinstance(payload, dict):
        for key in FRANCHISE_LIST_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key], payload
    return [], None


def parse_page_meta(meta: dict | None, page: int, per_page: int) -> dict:
    """Resolve pagination metadata from the known key aliases."""
    total_count = _first_int(meta, TOTAL_COUNT_KEYS)
    per_page_from_meta = _first_int(meta, ["per_page"]) or per_page
    current_page = _first_int(meta, CURRENT_PAGE_KEYS) or page
    total_pages = _first_int(meta, TOTAL_PAGES_KEYS)
    if total_pages is None and total_count:
        total_pages = max(1, math.ceil(total_count / per_page_from_meta))
    return {
        "current_page": current_page,
        "per_page": per_page_from_meta,
        "total_count": total_count,
        "total_pages": total_pages,
    }


def digits_only(value: Any) -> str:
    return re.sub(r"\D", "", str(value if value is not None else "").strip())


def _clean_name(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_outlet_lookup(data: Any) -> OutletLookup:
    """Pull the franchise and outlet display names from a lookup payload."""
    if not isinstance(data, dict):
        return OutletLookup()

    franchise_name = _clean_name(data.get("name"))
    outlet_name = None
    outlets = data.get("outlets")
    if isinstance(outlets, list):
        first = next((o for o in outlets if isinstance(o, dict) and "name" in o), None)
        outlet_name = _clean_name(first.get("name")) if first else None
    elif isinstance(outlets, dict):
        outlet_name = _clean_name(outlets.get("name"))

    return OutletLookup(
        franchise_name=franchise_name,
        outlet_name=outlet_name,
        found=bool(franchise_name or outlet_name),
    )


def authenticate(http: httpx.Client | None = None) -> AuthToken | None:
    """Log in to the directory API. Returns None on any failure."""
    settings = get_settings()
    if not settings.franchise_api_email or not settings.franchise_api_password:
        logger.warning("Franchise API credentials missing (FRANCHISE_API_EMAIL / FRANCHISE_API_PASSWORD)")
        return None

    url = f"{settings.franchise_api_base_url.rstrip('/')}{LOGIN_PATH}"
    body = {"email": settings.franchise_api_email, "password": settings.franchise_api_password}
    try:
        if http is not None:
            resp = http.post(url, json=body)
        else:
            resp = httpx.post(url, json=body, timeout=settings.franchise_api_timeout)
    except httpx.HTTPError as e:
        logger.error(f"Error fetching franchise API token: {e}")
        return None

    if not resp.is_success:
        logger.error(f"Failed to fetch franchise API token: {resp.status_code} {resp.reason_phrase}")
        return None

    try:
        payload = resp.json()
    except ValueError:
        logger.error("Franchise API token response is not JSON")
        return None

    token = payload.get("api_token") if isinstance(payload, dict) else None
    raw_expiry = payload.get("expires_at") if isinstance(payload, dict) else None
    if not token or not raw_expiry:
        logger.error("Franchise API token response missing fields")
        return None

    expires_at = parse_upstream_datetime(str(raw_expiry))
    if expires_at is None:
        logger.error(f"Unable to parse franchise API token expiry: {raw_expiry}")
        return None

    return AuthToken(value=token, expires_at=expires_at)


class DirectoryClient:
    """Authenticated access to the franchise directory API."""

    def __init__(
        self,
        token_cache: TokenCache | None = None,
        http: httpx.Client | None = None,
    ):
        settings = get_settings()
        self.token_cache = token_cache or get_token_cache()
        self._owns_http = http is None
        self.http = http or httpx.Client(
            base_url=settings.franchise_api_base_url.rstrip("/"),
            timeout=settings.franchise_api_timeout,
        )

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "DirectoryClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def authenticate(self) -> AuthToken | None:
        return authenticate(self.http)

    def _authorized_get(self, path: str, params: dict | None = None) -> httpx.Response | None:
        """GET with the cached token, re-authenticating once on a 401.

        Returns None when no token is available or the fresh token is rejected
        too. Transport errors propagate as ``httpx.HTTPError``.
        """
        for attempt in range(2):
            token = self.token_cache.get_token()
            if token is None:
                return None

            resp = self.http.get(
                path,
                params={**(params or {}), "api_token": token.value},
                headers={
                    "Authorization": f"Bearer {token.value}",
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
            if resp.status_code != 401:
                return resp

            self.token_cache.invalidate()
            if attempt == 0:
                logger.info(f"Franchise API rejected token for {path}, re-authenticating")

        logger.warning(f"Franchise API rejected a freshly issued token for {path}")
        return None

    def fetch_page(self, page: int, page_size: int) -> FranchisePage:
        """Fetch one page of raw franchise rows.

        Any failure yields an empty page; the ingestion loop decides whether an
        empty page is fatal.
        """
        safe_page = page if page > 0 else 1
        safe_per_page = page_size if page_size > 0 else DEFAULT_PER_PAGE
        empty = FranchisePage(current_page=safe_page, per_page=safe_per_page)

        try:
            resp = self._authorized_get(FRANCHISE_PATH, {"per_page": safe_per_page, "page": safe_page})
        except httpx.HTTPError as e:
            logger.warning(f"Error fetching franchise list page {safe_page}: {e}")
            return empty

        if resp is None:
            return empty
        if not resp.is_success:
            logger.warning(f"Franchise list lookup failed: {resp.status_code} {resp.reason_phrase}")
            return empty

        try:
            payload = resp.json()
        except ValueError:
            logger.warning(f"Franchise list page {safe_page} is not valid JSON")
            return empty

        rows, meta = extract_franchise_rows(payload)
        return FranchisePage(rows=rows, **parse_page_meta(meta, safe_page, safe_per_page))

    def fetch_one(self, fid: Any, oid: Any) -> OutletLookup | None:
        """Look up a single franchise outlet live, bypassing the cache.

        Returns None when the directory is unavailable (so callers keep their
        stored labels) and ``found=False`` when it answered but has no match.
        """
        fid_clean = digits_only(fid)
        oid_clean = digits_only(oid)
        if not fid_clean or not oid_clean:
            return None

        try:
            resp = self._authorized_get(f"{FRANCHISE_PATH}{fid_clean}/{oid_clean}")
        except httpx.HTTPError as e:
            logger.error(f"Error fetching franchise/outlet name: {e}")
            return OutletLookup()

        if resp is None:
            return None
        if not resp.is_success:
            if resp.status_code != 404:
                logger.warning(f"Franchise lookup failed: {resp.status_code} {resp.reason_phrase}")
            return OutletLookup()

        try:
            data = resp.json()
        except ValueError:
            logger.warning(f"Franchise lookup {fid_clean}/{oid_clean} is not valid JSON")
            return OutletLookup()

        return parse_outlet_lookup(data)
