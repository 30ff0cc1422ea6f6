"""Story asset API client package.

WHY: The bot needs read-only lookups of IP assets and collections. This
package keeps all HTTP communication and JSON shapes in one place.

HOW: StoryClient (client.py) issues authenticated POST requests with httpx
and parses responses into the dataclasses in models.py.

RULES:
- All HTTP calls to the asset API go through StoryClient
- Authentication is via the X-Api-Key header from Settings
"""

from license_bot.api.client import (
    StoryAPIError,
    StoryClient,
    StoryClientError,
    StoryConnectivityError,
    StoryDecodingError,
    StoryTransportError,
)
from license_bot.api.models import CollectionItem, CollectionMetadata, IPAsset

__all__ = [
    "CollectionItem",
    "CollectionMetadata",
    "IPAsset",
    "StoryAPIError",
    "StoryClient",
    "StoryClientError",
    "StoryConnectivityError",
    "StoryDecodingError",
    "StoryTransportError",
]
