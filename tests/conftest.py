"""Shared test fixtures for the license_bot test suite.

WHY: The client, router, and view tests all need realistic asset API
records and a fully built AppContext. Centralizing them here keeps every
test module on the same sample data.

HOW: Sample JSON records mirror the shape the asset API returns. The
``story_client`` factory wires StoryClient to an httpx.MockTransport so
no test touches the network.

RULES:
- No real HTTP: every StoryClient uses a MockTransport
- Sample ids are fixed strings for reproducibility
"""

from __future__ import annotations

import copy
import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from license_bot.api.client import StoryClient
from license_bot.config import Settings
from license_bot.context import AppContext
from license_bot.i18n import Translator


IP_ID = "0xAbC0000000000000000000000000000000000001"
CONTRACT_ADDRESS = "0xC0ffee0000000000000000000000000000000002"
OWNER = "0x0wner00000000000000000000000000000000003"
TX_HASH = "0x5eed000000000000000000000000000000000000000000000000000000000004"
USER_ID = "U123OWNER"


SAMPLE_ASSET: Dict[str, Any] = {
    "ipId": IP_ID,
    "title": "Sunset Song",
    "description": "An original track.",
    "ownerAddress": OWNER,
    "createdAt": "2024-05-01T13:45:07Z",
    "updatedAt": "2024-06-02T08:00:00Z",
    "nftMetadata": {
        "mediaType": "image",
        "image": {"originalUrl": "https://cdn.example/sunset.png"},
        "animation": {"originalUrl": ""},
        "originalUrl": "https://cdn.example/original",
        "externalUrl": "https://example.com/sunset",
        "contract": {
            "name": "Sunset Contract",
            "symbol": "SUN",
            "address": CONTRACT_ADDRESS,
            "totalSupply": 1000,
        },
        "collection": {"name": "Sunsets"},
        "mint": {
            "mintAddress": "0xM1nt",
            "blockNumber": 123456,
            "timestamp": "2024-05-01T13:45:07Z",
            "transactionHash": TX_HASH,
            "ownerAddress": OWNER,
            "lastUpdatedAt": "2024-05-02T00:00:00Z",
            "timeLastUpdated": "2024-05-03T00:00:00Z",
        },
    },
    "licenseTemplate": {
        "templateName": "pil",
        "templateMetadataUri": "https://example.com/pil.json",
        "licenseTemplateId": "7",
        "terms": {
            "transferable": True,
            "commercialUse": True,
            "derivativesAllowed": False,
            "derivativesApproval": False,
            "commercialRevShare": 20000000,
            "attributionRequired": False,
            "derivativesAttribution": False,
            "commercialAttribution": True,
        },
    },
    "licenses": [
        {
            "templateName": "fallback",
            "licenseTemplateId": "99",
            "terms": {"transferable": False},
        },
    ],
    "infringementStatus": [
        {
            "status": "succeeded",
            "isInfringing": False,
            "providerName": "Yakoa",
            "responseTime": "2024-05-05T10:00:00Z",
        },
    ],
    "moderationStatus": {
        "adult": "VERY_UNLIKELY",
        "spoof": "UNLIKELY",
        "medical": "VERY_UNLIKELY",
        "violence": "UNLIKELY",
        "racy": "VERY_UNLIKELY",
    },
    "contract": {"name": "Top Contract", "symbol": "TOP", "address": CONTRACT_ADDRESS},
}

SAMPLE_COLLECTION_ITEM: Dict[str, Any] = {
    "collectionMetadata": {
        "address": CONTRACT_ADDRESS,
        "name": "Sunsets",
        "symbol": "SUN",
        "totalSupply": 1000,
        "tokenType": "ERC721",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-02-01T00:00:00Z",
    },
    "raisedDisputeCount": 3,
    "resolvedDisputeCount": 1,
    "cancelledDisputeCount": 0,
    "judgedDisputeCount": 2,
}


@pytest.fixture
def sample_asset() -> Dict[str, Any]:
    """A fully populated asset record (deep copy, safe to mutate)."""
    return copy.deepcopy(SAMPLE_ASSET)


@pytest.fixture
def sample_collection_item() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_COLLECTION_ITEM)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        slack_bot_token="xoxb-test",
        slack_app_token="xapp-test",
        story_api_key="key-123",
        story_api_base_url="https://api.example.test/api/v4",
        locale="en",
        button_timeout_sec=300,
        db_name="licensebot",
    )


@pytest.fixture
def translator() -> Translator:
    return Translator()


@pytest.fixture
def story_client() -> Callable[..., StoryClient]:
    """Factory: build a StoryClient whose requests go to ``handler``.

    ``handler`` receives the httpx.Request and returns an httpx.Response.
    Every request seen is appended to ``client.requests`` for assertions.
    """
    clients: List[StoryClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> StoryClient:
        requests: List[httpx.Request] = []

        def recorder(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = StoryClient(
            api_key="key-123",
            base_url="https://api.example.test/api/v4/",
            transport=httpx.MockTransport(recorder),
        )
        client.requests = requests  # type: ignore[attr-defined]
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))


@pytest.fixture
def app_context(settings, translator):
    """AppContext whose API client is a MagicMock (set return values per test)."""
    from unittest.mock import MagicMock

    return AppContext(settings=settings, client=MagicMock(), translator=translator)
