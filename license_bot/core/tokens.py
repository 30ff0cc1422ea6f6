"""Button interaction tokens encoded in Slack action ids.

WHY: Follow-up buttons must remember which entity they act on and which
user may click them, but the bot keeps no server-side state. The whole
routing and authorization state therefore lives in the button's
action_id string.

HOW: InteractionToken is a frozen dataclass that encodes to
``"<namespace>:<action>:<target-id>:<owner-id>"`` and decodes from that
string at the Slack boundary. Nothing past decode() sees the raw string.

RULES:
- Fewer than four colon-delimited parts raise InvalidTokenError
- Five or more parts are the legacy form ns:action:<mode>:target:owner;
  the mode part is ignored
- An empty owner id means "anyone may click"
- Tokens are never stored or deduplicated, only authorized
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DELIMITER = ":"


class Namespace(str, Enum):
    """First token segment: which entity type the action applies to."""

    LICENSE = "lic"
    COLLECTION = "col"


class LicenseAction(str, Enum):
    TERMS = "terms"
    INFRINGEMENT = "infr"
    MODERATION = "mod"
    MINT = "mint"
    COLLECTION = "coll"


class CollectionAction(str, Enum):
    DISPUTES = "disputes"
    SHOW = "show"


class InvalidTokenError(ValueError):
    """Raised when an action id cannot be decoded into a token."""


@dataclass(frozen=True)
class InteractionToken:
    """Decoded button state: namespace, action, target entity, owning user."""

    namespace: str
    action: str
    target_id: str
    owner_id: str = ""

    def encode(self) -> str:
        return DELIMITER.join(
            [_value(self.namespace), _value(self.action), self.target_id, self.owner_id]
        )

    @classmethod
    def decode(cls, custom_id: str) -> InteractionToken:
        """Parse an action id string into a token.

        Raises:
            InvalidTokenError: if the string has fewer than four parts.
        """
        parts = (custom_id or "").split(DELIMITER)
        if len(parts) < 4:
            raise InvalidTokenError("invalid button id: {!r}".format(custom_id))
        if len(parts) == 4:
            target_id, owner_id = parts[2], parts[3]
        else:
            target_id, owner_id = parts[3], parts[4]
        return cls(
            namespace=parts[0],
            action=parts[1],
            target_id=target_id,
            owner_id=owner_id,
        )

    def is_owned_by(self, user_id: str) -> bool:
        """True when ``user_id`` may use this token."""
        return not self.owner_id or self.owner_id == user_id


def _value(part) -> str:  # noqa: ANN001
    return part.value if isinstance(part, Enum) else str(part)


def license_token(action: LicenseAction, ip_id: str, owner_id: str) -> str:
    return InteractionToken(Namespace.LICENSE.value, action.value, ip_id, owner_id).encode()


def collection_token(action: CollectionAction, address: str, owner_id: str) -> str:
    return InteractionToken(Namespace.COLLECTION.value, action.value, address, owner_id).encode()
