"""Slack bot: Socket Mode app, slash commands, and button actions.

WHY: The router is written against a small Interaction interface. This
module is the glue to Slack: it turns Bolt's command and block_actions
payloads into Interactions, registers the listeners, and runs the app.

HOW: Uses slack-bolt with Socket Mode (no public URL needed). Bolt runs
each listener on a worker thread, so every inbound event is handled
independently. The AppContext (settings, API client, translator) is
built once in run() and shared by all listeners.

RULES:
- Every listener ends in ack(); the router calls it before any I/O
- Slash command text: the first whitespace-separated word is the parameter
- Link buttons (action_id "link:*") are only acknowledged
- Every other action id goes to the router, which rejects invalid tokens
- Slack API failures surface as DeliveryError
- Runnable as: python -m license_bot
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk.errors import SlackApiError

from license_bot.api.client import StoryClient
from license_bot.config import Settings
from license_bot.context import AppContext
from license_bot.i18n import Translator
from license_bot.slack.messages import (
    LINK_ACTION_PREFIX,
    RichMessage,
    disable_blocks,
    has_action_blocks,
    to_slack_payload,
)
from license_bot.slack.router import (
    COMMANDS,
    AlreadyAcknowledged,
    DeliveryError,
    Interaction,
    MessageRef,
    Router,
)

logger = logging.getLogger(__name__)

LINK_ACTION_PATTERN = re.compile("^" + re.escape(LINK_ACTION_PREFIX))
TOKEN_ACTION_PATTERN = re.compile("^(?!" + re.escape(LINK_ACTION_PREFIX) + ")")


# ---------------------------------------------------------------------------
# Interaction adapter
# ---------------------------------------------------------------------------


class SlackInteraction(Interaction):
    """A Bolt slash command or block_actions payload seen as an Interaction.

    Args:
        ack: Bolt's ack function for this request.
        client: Slack WebClient (thread-safe, shared).
        body: The command payload or the block_actions body.
        respond: Bolt's respond function (posts to the payload's
            response_url). Used for ephemeral replies after ack, which
            then reach the user even when the bot is not in the channel.
    """

    def __init__(
        self,
        ack: Callable[..., Any],
        client: Any,
        body: Dict[str, Any],
        respond: Optional[Callable[..., Any]] = None,
    ) -> None:
        self._ack = ack
        self._client = client
        self._body = body
        self._respond = respond
        self._acked = False
        self._is_action = body.get("type") == "block_actions"

        if self._is_action:
            self.user_id = body.get("user", {}).get("id", "")
            self._channel = body.get("channel", {}).get("id", "")
        else:
            self.user_id = body.get("user_id", "")
            self._channel = body.get("channel_id", "")
        self.locale = body.get("locale") or body.get("user", {}).get("locale", "") or ""

    # -- payload accessors ---------------------------------------------

    @property
    def command_name(self) -> str:
        return (self._body.get("command") or "").lstrip("/")

    @property
    def options(self) -> List[str]:
        return (self._body.get("text") or "").split()

    @property
    def custom_id(self) -> str:
        actions = self._body.get("actions") or []
        if not actions:
            return ""
        return actions[0].get("action_id", "")

    # -- acknowledgment ------------------------------------------------

    def defer(self) -> None:
        if self._acked:
            raise AlreadyAcknowledged("interaction has already been acknowledged")
        self._acked = True
        self._ack()

    # -- sending -------------------------------------------------------

    def reply(self, text: str, ephemeral: bool = False) -> None:
        if not self._acked and not self._is_action:
            # Immediate slash-command response; Slack shows it to the caller only
            # unless response_type is in_channel.
            self._acked = True
            self._ack(text=text, response_type="ephemeral" if ephemeral else "in_channel")
            return
        if not self._acked:
            self.defer()
        if ephemeral and self._respond is not None:
            resp = self._respond(text=text, response_type="ephemeral")
            status = getattr(resp, "status_code", 200)
            if status != 200:
                raise DeliveryError("response_url returned HTTP {}".format(status))
            return
        try:
            if ephemeral:
                self._client.chat_postEphemeral(
                    channel=self._channel, user=self.user_id, text=text,
                )
            else:
                self._client.chat_postMessage(channel=self._channel, text=text)
        except SlackApiError as exc:
            raise DeliveryError(str(exc)) from exc

    def send(self, message: RichMessage) -> Optional[MessageRef]:
        payload = to_slack_payload(message)
        try:
            resp = self._client.chat_postMessage(channel=self._channel, **payload)
        except SlackApiError as exc:
            raise DeliveryError(str(exc)) from exc
        return MessageRef(
            channel=resp.get("channel", self._channel),
            ts=resp.get("ts", ""),
            payload=payload,
        )

    # -- message lifecycle ---------------------------------------------

    def disable_source_buttons(self) -> None:
        message = self._body.get("message") or {}
        blocks = message.get("blocks") or []
        if not has_action_blocks(blocks):
            return
        kwargs: Dict[str, Any] = {
            "channel": self._channel,
            "ts": message.get("ts", ""),
            "text": message.get("text", ""),
            "blocks": disable_blocks(blocks),
        }
        if message.get("attachments"):
            kwargs["attachments"] = message["attachments"]
        try:
            self._client.chat_update(**kwargs)
        except SlackApiError as exc:
            raise DeliveryError(str(exc)) from exc

    def delete_message(self, ref: MessageRef) -> None:
        try:
            self._client.chat_delete(channel=ref.channel, ts=ref.ts)
        except SlackApiError as exc:
            raise DeliveryError(str(exc)) from exc

    def disable_message(self, ref: MessageRef) -> None:
        payload = dict(ref.payload)
        payload["blocks"] = disable_blocks(payload.get("blocks") or [])
        try:
            self._client.chat_update(channel=ref.channel, ts=ref.ts, **payload)
        except SlackApiError as exc:
            raise DeliveryError(str(exc)) from exc


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


def create_app(router: Router, bot_token: str, **app_kwargs: Any) -> App:
    """Create the Bolt app and register every command and action listener.

    WHY: Factory function keeps handler registration in one place and lets
    tests build an app around a router with fake collaborators.

    RULES:
    - One listener per slash command in COMMANDS
    - Link buttons are acked and ignored
    """
    app = App(token=bot_token, **app_kwargs)

    def on_command(ack: Any, command: Dict[str, Any], client: Any, respond: Any) -> None:
        router.handle_command(SlackInteraction(ack, client, command, respond))

    def on_component(ack: Any, body: Dict[str, Any], client: Any, respond: Any) -> None:
        router.handle_component(SlackInteraction(ack, client, body, respond))

    def on_link(ack: Any) -> None:
        ack()

    for name in COMMANDS:
        app.command("/" + name)(on_command)
    app.action(LINK_ACTION_PATTERN)(on_link)
    app.action(TOKEN_ACTION_PATTERN)(on_component)

    return app


def build_context(settings: Settings) -> AppContext:
    """Construct the shared AppContext from validated settings."""
    client = StoryClient(
        api_key=settings.story_api_key,
        base_url=settings.story_api_base_url,
    )
    return AppContext(settings=settings, client=client, translator=Translator())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run(settings: Settings) -> None:
    """Start the bot in Socket Mode and block until interrupted.

    In-flight handler threads and pending expiry timers are abandoned on
    exit; they are daemon threads.
    """
    ctx = build_context(settings)
    router = Router(ctx)
    app = create_app(router, bot_token=settings.slack_bot_token)

    logger.info("Starting license bot in Socket Mode...")
    logger.info("Story API base URL: %s", settings.story_api_base_url)
    logger.info(
        "Locale: %s, button timeout: %ss", settings.locale, settings.button_timeout_sec
    )

    try:
        SocketModeHandler(app, settings.slack_app_token).start()
    finally:
        ctx.client.close()
        logger.warning("License bot stopped")
