"""HTTP client for the Story asset API.

WHY: Every bot command is a read-only lookup against the asset API. This
module hides the HTTP details (auth header, request body shape, error
classification) behind a small typed interface so the router only deals
with records, "not found" (None), and a handful of exception types.

HOW: StoryClient wraps a single httpx.Client with the X-Api-Key header and
a fixed 15s timeout. Every lookup is one POST with an ordering,
pagination, and ``where`` filter body. Derived lookups (terms,
infringement, moderation, mint, collection) fetch the asset and project
one sub-field from it.

RULES:
- Use as a context manager: with StoryClient(...) as client: ...
- A single client is shared by all handler threads (httpx.Client is
  thread-safe); it holds no per-request state
- Empty result sets return None, never raise
- Non-2xx with a structured body -> StoryAPIError; any other non-2xx ->
  StoryTransportError; malformed 2xx body -> StoryDecodingError;
  connect failures and timeouts -> StoryConnectivityError
- No retries: a failed call surfaces immediately
"""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any

import httpx
import jsonschema

from license_bot.api.models import (
    CollectionInfo,
    CollectionItem,
    CollectionMetadata,
    ContractInfo,
    InfringementStatus,
    IPAsset,
    LicenseTermsWrapper,
    ModerationStatus,
    NFTMint,
)
from license_bot.core.views import resolve_collection, resolve_contract

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

REQUEST_TIMEOUT_S = 15.0

ASSETS_PATH = "/assets"
COLLECTIONS_PATH = "/collections"

_INVALID_ID_MARKERS = ("invalid ip asset id", "invalid ip id")

# Structured error body returned by the API, e.g.
# {"status": 400, "title": "Bad Request", "detail": "invalid ip asset id format"}
API_ERROR_SCHEMA = {
    "type": "object",
    "properties": {
        "status": {"type": "integer", "not": {"const": 0}},
        "title": {"type": "string"},
        "detail": {"type": "string"},
    },
    "required": ["status"],
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoryClientError(Exception):
    """Base class for every failure raised by StoryClient."""


class StoryAPIError(StoryClientError):
    """Raised when the API answers non-2xx with a structured error body.

    WHY: The API reports bad input (e.g. a malformed IP id) as a structured
    error. Callers match on the title/detail text to show a friendly
    message instead of the raw error.

    RULES:
    - status is the numeric status from the body (non-zero)
    - raw keeps the full response text for logging
    """

    def __init__(self, status: int, title: str = "", detail: str = "", raw: str = "") -> None:
        self.status = status
        self.title = title
        self.detail = detail
        self.raw = raw
        if title or detail:
            message = "story api error: status={} title={} detail={}".format(status, title, detail)
        else:
            message = "story api error: status={}".format(status)
        super().__init__(message)

    def is_invalid_id(self) -> bool:
        """True when title/detail says the asset id is malformed (case-insensitive)."""
        text = "{} {}".format(self.detail, self.title).lower()
        return any(marker in text for marker in _INVALID_ID_MARKERS)


class StoryTransportError(StoryClientError):
    """Raised for a non-2xx response whose body is not a structured error."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__("story api error: status={} body={}".format(status_code, body))


class StoryDecodingError(StoryClientError):
    """Raised when a 2xx response body does not have the expected shape."""


class StoryConnectivityError(StoryClientError):
    """Raised when the API cannot be reached (connection failure, timeout)."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class StoryClient:
    """Synchronous client for the Story asset API.

    WHY: Slack Bolt runs each listener in a worker thread, so a blocking
    client shared between threads keeps the call sites simple.

    HOW: Wraps httpx.Client with base_url, auth header and timeout. Open it
    with ``with`` (or call close()) to release the connection pool.

    RULES:
    - api_key and base_url come from Settings
    - transport is injectable for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT_S,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={
                "X-Api-Key": api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def __enter__(self) -> StoryClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _post(self, path: str, body: dict[str, Any]) -> Any:
        """POST a JSON body and return the decoded JSON response.

        Raises the StoryClientError subclass matching the failure.
        """
        try:
            resp = self._client.post(path, content=json.dumps(body))
        except httpx.TransportError as exc:
            raise StoryConnectivityError(
                "story api unreachable: {}: {}".format(type(exc).__name__, exc)
            ) from exc

        if not 200 <= resp.status_code < 300:
            raise _classify_error(resp)

        try:
            return resp.json()
        except ValueError as exc:
            raise StoryDecodingError(
                "story api returned invalid JSON from {}: {}".format(path, exc)
            ) from exc

    def _post_assets(self, where: dict[str, Any]) -> list[IPAsset]:
        body = {
            "orderBy": "blockNumber",
            "orderDirection": "desc",
            "pagination": {"offset": 0},
            "includeLicenses": True,
            "where": where,
        }
        data = self._post(ASSETS_PATH, body)
        return _decode_list(data, IPAsset.from_dict, ASSETS_PATH)

    def _post_collections(self, address: str) -> list[CollectionItem]:
        body = {
            "orderBy": "updatedAt",
            "orderDirection": "desc",
            "pagination": {"offset": 0},
            "where": {"collectionAddresses": [address]},
        }
        data = self._post(COLLECTIONS_PATH, body)
        return _decode_list(data, CollectionItem.from_dict, COLLECTIONS_PATH)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_asset_by_id(self, ip_id: str) -> IPAsset | None:
        """Return the first asset matching ``ip_id``, or None."""
        assets = self._post_assets({"ipIds": [ip_id]})
        if not assets:
            logger.debug("No asset found for %s", ip_id)
            return None
        return assets[0]

    def get_assets(self, where: dict[str, Any]) -> list[IPAsset]:
        """Return every asset matching a custom ``where`` filter."""
        return self._post_assets(where)

    def get_collection_by_address(self, address: str) -> CollectionMetadata | None:
        """Return collection metadata for a contract address, or None.

        An entry without a collectionMetadata object counts as not found.
        """
        items = self._post_collections(address)
        if not items:
            return None
        return items[0].metadata

    def get_collection_disputes(self, address: str) -> CollectionItem | None:
        """Return the collection entry (with dispute counters), or None."""
        items = self._post_collections(address)
        if not items:
            return None
        return items[0]

    # ------------------------------------------------------------------
    # Derived lookups: fetch the asset, project one sub-field
    # ------------------------------------------------------------------

    def get_asset_terms(self, ip_id: str) -> LicenseTermsWrapper | None:
        """Return the asset's license terms, or None.

        The primary license template wins over the first entry of the
        license list. attribution_required is derived as
        derivatives_attribution OR commercial_attribution.
        """
        asset = self.get_asset_by_id(ip_id)
        if asset is None:
            return None
        wrapper = asset.license_template
        if wrapper is None and asset.licenses:
            wrapper = asset.licenses[0]
        if wrapper is None:
            return None
        if wrapper.terms is not None:
            terms = dataclasses.replace(
                wrapper.terms,
                attribution_required=(
                    wrapper.terms.derivatives_attribution
                    or wrapper.terms.commercial_attribution
                ),
            )
            wrapper = dataclasses.replace(wrapper, terms=terms)
        return wrapper

    def get_asset_infringement(self, ip_id: str) -> list[InfringementStatus]:
        """Return every infringement check for the asset (empty when not found)."""
        asset = self.get_asset_by_id(ip_id)
        if asset is None:
            return []
        return asset.infringement

    def get_asset_moderation(self, ip_id: str) -> ModerationStatus | None:
        asset = self.get_asset_by_id(ip_id)
        if asset is None:
            return None
        return asset.moderation

    def get_asset_mint(self, ip_id: str) -> NFTMint | None:
        """Return the mint record; nftMetadata.mint wins over top-level mint."""
        asset = self.get_asset_by_id(ip_id)
        if asset is None:
            return None
        if asset.nft_metadata is not None and asset.nft_metadata.mint is not None:
            return asset.nft_metadata.mint
        return asset.mint

    def get_asset_collection(self, ip_id: str) -> CollectionInfo | None:
        asset = self.get_asset_by_id(ip_id)
        if asset is None:
            return None
        return resolve_collection(asset)

    def get_asset_contract(self, ip_id: str) -> ContractInfo | None:
        asset = self.get_asset_by_id(ip_id)
        if asset is None:
            return None
        return resolve_contract(asset)


# ---------------------------------------------------------------------------
# Response helpers (module-private)
# ---------------------------------------------------------------------------


def _classify_error(resp: httpx.Response) -> StoryClientError:
    """Turn a non-2xx response into StoryAPIError or StoryTransportError."""
    text = resp.text
    try:
        body = resp.json()
        jsonschema.validate(body, API_ERROR_SCHEMA)
    except (ValueError, jsonschema.ValidationError):
        return StoryTransportError(resp.status_code, text)
    return StoryAPIError(
        status=body["status"],
        title=body.get("title", ""),
        detail=body.get("detail", ""),
        raw=text,
    )


def _decode_list(data: Any, factory, path: str) -> list:  # noqa: ANN001
    """Parse ``{"data": [...]}`` into records with ``factory``."""
    if not isinstance(data, dict):
        raise StoryDecodingError("unexpected response from {}: not an object".format(path))
    items = data.get("data") or []
    if not isinstance(items, list):
        raise StoryDecodingError("unexpected response from {}: data is not a list".format(path))
    try:
        return [factory(item) for item in items]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise StoryDecodingError(
            "unexpected record shape from {}: {}".format(path, exc)
        ) from exc
