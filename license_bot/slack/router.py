"""Interaction router: slash commands, button clicks, and message expiry.

WHY: Every inbound Slack event must be acknowledged within 3 seconds,
answered with a rich message, and, when the answer carries buttons, the
buttons must only work for the user who asked and must go away after a
while. This module is the state machine that ties those steps together,
independent of the Slack SDK.

HOW: The Slack layer wraps each event in an Interaction (see bot.py) and
calls Router.handle_command() or Router.handle_component(). Handlers run
Received -> Acknowledged (defer) -> API call -> Resolved (message sent)
and, for messages with buttons, schedule a one-shot expiry that deletes
the message or, failing that, disables its buttons.

Button clicks decode the action id into an InteractionToken, disable the
clicked message's buttons, check that the clicker owns the token, and
dispatch to the same handler as the equivalent slash command.

RULES:
- defer() happens before any network I/O; AlreadyAcknowledged is benign
- The first word of the command text is the business parameter
- Invalid tokens get an "invalid component" reply, never an exception
- Buttons are disabled before the ownership check and before any API call
- A non-owner click gets an ephemeral reply and makes no API call
- Every handler path ends in a user-visible message; nothing is retried
- Expiry is best-effort: no cancellation, failures are logged at debug
"""

from __future__ import annotations

import functools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from license_bot.api.client import StoryAPIError, StoryClientError
from license_bot.context import AppContext
from license_bot.core.formatters import (
    NO_GLYPH,
    VERDICT_INFRINGING,
    VERDICT_POTENTIAL_ISSUE,
    VERDICT_REVIEW,
    VERDICT_UNSAFE,
    WARN_GLYPH,
    YES_GLYPH,
    bool_glyph,
    evaluate_infringement,
    evaluate_moderation,
    format_date,
    format_datetime,
    format_datetime_seconds,
    format_rev_share_percent,
    format_rfc3339,
    latest_check,
)
from license_bot.core.tokens import (
    CollectionAction,
    InteractionToken,
    InvalidTokenError,
    LicenseAction,
    Namespace,
    collection_token,
)
from license_bot.core.views import (
    content_type,
    license_action_row,
    play_link,
    resolve_collection,
    resolve_contract,
)
from license_bot.slack.messages import (
    COLOR_CAUTION,
    COLOR_COLLECTION,
    COLOR_DISPUTES,
    COLOR_ERROR,
    COLOR_LICENSE_COLLECTION,
    COLOR_MINT,
    COLOR_SUCCESS,
    COLOR_TERMS,
    COLOR_WARNING,
    ActionRow,
    Button,
    RichMessage,
    finalize,
    link_button,
    plain_text,
)

logger = logging.getLogger(__name__)

STORYSCAN_TX_URL = "https://www.storyscan.io/tx/{}"

# ---------------------------------------------------------------------------
# Platform seam
# ---------------------------------------------------------------------------


class AlreadyAcknowledged(Exception):
    """Raised by Interaction.defer() when the event was already acknowledged."""


class DeliveryError(Exception):
    """Raised by an Interaction when the chat platform rejects a call."""


@dataclass
class MessageRef:
    """Where a sent message lives, plus the payload it was sent with."""

    channel: str
    ts: str
    payload: Dict[str, Any] = field(default_factory=dict)


class Interaction(ABC):
    """One inbound slash command or button click.

    Implemented by the Slack layer; tests use in-memory fakes.
    """

    user_id: str = ""
    locale: str = ""

    @property
    @abstractmethod
    def command_name(self) -> str:
        """Slash command name without the leading slash ("" for clicks)."""

    @property
    @abstractmethod
    def options(self) -> List[str]:
        """Declared option values of a slash command, in order."""

    @property
    @abstractmethod
    def custom_id(self) -> str:
        """The clicked button's action id ("" for commands)."""

    @abstractmethod
    def defer(self) -> None:
        """Acknowledge the event; raises AlreadyAcknowledged on a second call."""

    @abstractmethod
    def reply(self, text: str, ephemeral: bool = False) -> None:
        """Send a plain-text reply (the acknowledgment itself if not yet deferred)."""

    @abstractmethod
    def send(self, message: RichMessage) -> Optional[MessageRef]:
        """Send a rich message; returns where it landed."""

    @abstractmethod
    def disable_source_buttons(self) -> None:
        """Disable the buttons of the message that was clicked."""

    @abstractmethod
    def delete_message(self, ref: MessageRef) -> None:
        """Delete a previously sent message."""

    @abstractmethod
    def disable_message(self, ref: MessageRef) -> None:
        """Re-issue a previously sent message with its buttons disabled."""


Scheduler = Callable[[float, Callable[[], None]], None]


def start_timer(delay_s: float, fn: Callable[[], None]) -> None:
    """Run ``fn`` once after ``delay_s`` on a daemon thread (no cancel handle)."""
    timer = threading.Timer(delay_s, fn)
    timer.daemon = True
    timer.start()


# ---------------------------------------------------------------------------
# Dispatch tables
# ---------------------------------------------------------------------------

COMMANDS: Tuple[str, ...] = (
    "license",
    "license_terms",
    "license_infringement",
    "license_moderation",
    "license_mint",
    "license_collection",
    "collection",
    "collection_disputes",
)

COMPONENT_ROUTES: Dict[Tuple[str, str], str] = {
    (Namespace.LICENSE.value, LicenseAction.TERMS.value): "license_terms",
    (Namespace.LICENSE.value, LicenseAction.INFRINGEMENT.value): "license_infringement",
    (Namespace.LICENSE.value, LicenseAction.MODERATION.value): "license_moderation",
    (Namespace.LICENSE.value, LicenseAction.MINT.value): "license_mint",
    (Namespace.LICENSE.value, LicenseAction.COLLECTION.value): "license_collection",
    (Namespace.COLLECTION.value, CollectionAction.DISPUTES.value): "collection_disputes",
    (Namespace.COLLECTION.value, CollectionAction.SHOW.value): "collection",
}


def _check_routes() -> None:
    """Fail at import if an action enum member has no route or a route no command."""
    expected = {(Namespace.LICENSE.value, a.value) for a in LicenseAction}
    expected |= {(Namespace.COLLECTION.value, a.value) for a in CollectionAction}
    missing = expected - set(COMPONENT_ROUTES)
    unknown = set(COMPONENT_ROUTES.values()) - set(COMMANDS)
    if missing or unknown:
        raise RuntimeError(
            "Incomplete component routes: missing={} unknown={}".format(
                sorted(missing), sorted(unknown)
            )
        )


_check_routes()


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class Router:
    """Routes interactions to handlers and owns the message lifecycle."""

    def __init__(self, ctx: AppContext, scheduler: Optional[Scheduler] = None) -> None:
        self._ctx = ctx
        self._client = ctx.client
        self._schedule = scheduler or start_timer
        self._handlers: Dict[str, Callable[[Interaction, str], None]] = {
            "license": self.handle_license,
            "license_terms": self.handle_license_terms,
            "license_infringement": self.handle_license_infringement,
            "license_moderation": self.handle_license_moderation,
            "license_mint": self.handle_license_mint,
            "license_collection": self.handle_license_collection,
            "collection": self.handle_collection,
            "collection_disputes": self.handle_collection_disputes,
        }
        missing = set(COMMANDS) - set(self._handlers)
        if missing:
            raise RuntimeError("No handler for commands: {}".format(sorted(missing)))

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_command(self, interaction: Interaction) -> None:
        """Dispatch a slash command by name."""
        locale = self._locale(interaction)
        options = interaction.options
        if not options:
            self._reply(interaction, self._t(locale, "missing_param"))
            return

        handler = self._handlers.get(interaction.command_name)
        if handler is None:
            logger.info("Unknown command %r", interaction.command_name)
            self._reply(interaction, self._t(locale, "unknown_command"))
            return

        handler(interaction, options[0])

    def handle_component(self, interaction: Interaction) -> None:
        """Decode, disable, authorize, and dispatch a button click."""
        locale = self._locale(interaction)
        if not self._defer(interaction):
            logger.warning("Proceeding with unacknowledged component %s", interaction.custom_id)

        try:
            token = InteractionToken.decode(interaction.custom_id)
        except InvalidTokenError:
            logger.info("Invalid component id %r", interaction.custom_id)
            self._reply(interaction, self._t(locale, "invalid_component"))
            return

        try:
            interaction.disable_source_buttons()
        except DeliveryError as exc:
            logger.debug("Failed to disable clicked buttons: %s", exc)

        if not token.is_owned_by(interaction.user_id):
            logger.info(
                "User %s clicked %s owned by %s",
                interaction.user_id, token.action, token.owner_id,
            )
            self._reply(interaction, self._t(locale, "unauth_button"), ephemeral=True)
            return

        if token.namespace not in {ns.value for ns in Namespace}:
            self._reply(interaction, self._t(locale, "unknown_component"))
            return

        command = COMPONENT_ROUTES.get((token.namespace, token.action))
        if command is None:
            self._reply(interaction, self._t(locale, "unknown_action"))
            return

        self._handlers[command](interaction, token.target_id)

    # ------------------------------------------------------------------
    # License handlers
    # ------------------------------------------------------------------

    def handle_license(self, interaction: Interaction, ip_id: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            asset = self._client.get_asset_by_id(ip_id)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if asset is None:
            self._send_not_found(interaction, t("title_license"), t("not_found"))
            return

        message = RichMessage(
            title=asset.title or ip_id,
            description=asset.description,
            color=COLOR_SUCCESS,
        )
        message.add_field(t("embed_id"), ip_id)
        if asset.owner_address:
            message.add_field(t("embed_owner"), asset.owner_address, inline=True)

        kind = content_type(asset.nft_metadata)
        if kind:
            message.add_field(t("embed_metadata"), kind)
        link = play_link(asset.nft_metadata, kind)

        if link:
            message.rows.append(ActionRow([link_button(t("btn_play"), link, "play")]))
        if interaction.user_id:
            specs = license_action_row(asset, ip_id, interaction.user_id)
            message.rows.append(ActionRow([
                Button(label=t(spec.label_key), action_id=spec.action_id, primary=spec.primary)
                for spec in specs
            ]))

        if asset.created_at is not None:
            message.add_field(t("embed_created"), format_date(asset.created_at), inline=True)
        if asset.updated_at is not None:
            message.add_field(t("embed_updated"), format_date(asset.updated_at), inline=True)

        self._send(interaction, message)

    def handle_license_terms(self, interaction: Interaction, ip_id: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            wrapper = self._client.get_asset_terms(ip_id)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if wrapper is None:
            self._send_not_found(interaction, t("title_terms"), t("no_terms"))
            return

        message = RichMessage(title=t("title_terms"), color=COLOR_TERMS)
        if wrapper.license_template_id:
            message.add_field(t("embed_template"), wrapper.license_template_id)
        if wrapper.template_name:
            message.add_field(t("embed_template_name"), wrapper.template_name.upper())
        if wrapper.template_metadata_uri:
            message.add_field(t("embed_template_url"), wrapper.template_metadata_uri)

        terms = wrapper.terms
        if terms is not None:
            lines = [
                "{}: {}".format(t("embed_id"), ip_id),
                "",
                "{}: {}".format(t("embed_transferable"), bool_glyph(terms.transferable)),
                "{}: {}".format(t("embed_commercial_use"), bool_glyph(terms.commercial_use)),
                "{}: {}".format(t("embed_derivatives_allowed"), bool_glyph(terms.derivatives_allowed)),
                "{}: {}".format(t("embed_derivatives_approval"), bool_glyph(terms.derivatives_approval)),
                "{}: {}".format(
                    t("embed_commercial_rev_share"),
                    format_rev_share_percent(terms.commercial_rev_share),
                ),
                "{}: {}".format(t("embed_attribution"), bool_glyph(terms.attribution_required)),
            ]
            message.description = "\n".join(lines)

        self._send(interaction, message)

    def handle_license_infringement(self, interaction: Interaction, ip_id: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            checks = self._client.get_asset_infringement(ip_id)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if not checks:
            self._send_not_found(interaction, t("title_infringement"), t("no_checks"))
            return

        verdict = evaluate_infringement(checks)
        if verdict == VERDICT_INFRINGING:
            description, color = "{} {}".format(NO_GLYPH, verdict), COLOR_ERROR
        elif verdict == VERDICT_POTENTIAL_ISSUE:
            description, color = "{} {}".format(WARN_GLYPH, verdict), COLOR_CAUTION
        else:
            description, color = "{} {}".format(YES_GLYPH, verdict), COLOR_SUCCESS

        message = RichMessage(
            title="{}: {}".format(t("title_infringement"), ip_id),
            description=description,
            color=color,
        )
        latest = latest_check(checks)
        if latest.provider_name:
            message.add_field(t("embed_provider"), latest.provider_name, inline=True)
        if latest.response_time is not None:
            message.add_field(t("embed_checked"), format_datetime(latest.response_time), inline=True)

        self._send(interaction, message)

    def handle_license_moderation(self, interaction: Interaction, ip_id: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            moderation = self._client.get_asset_moderation(ip_id)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if moderation is None:
            self._send_not_found(interaction, t("title_moderation"), t("no_moderation"))
            return

        verdict = evaluate_moderation(moderation)
        color = COLOR_SUCCESS
        if verdict == VERDICT_UNSAFE:
            color = COLOR_ERROR
        elif verdict == VERDICT_REVIEW:
            color = COLOR_CAUTION

        message = RichMessage(
            title="{}: {}".format(t("title_moderation"), ip_id),
            description=verdict,
            color=color,
        )
        for key, value in (
            ("adult", moderation.adult),
            ("spoof", moderation.spoof),
            ("medical", moderation.medical),
            ("violence", moderation.violence),
            ("racy", moderation.racy),
        ):
            message.add_field(t(key), value, inline=True)

        self._send(interaction, message)

    def handle_license_mint(self, interaction: Interaction, ip_id: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            mint = self._client.get_asset_mint(ip_id)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if mint is None:
            self._send_not_found(interaction, t("title_mint"), t("no_mint"))
            return

        message = RichMessage(title="{}: {}".format(t("title_mint"), ip_id), color=COLOR_MINT)
        message.add_field(t("mint_address"), mint.mint_address)
        if mint.block_number is not None:
            message.add_field(t("block_number"), mint.block_number, inline=True)
        if mint.timestamp is not None:
            message.add_field(t("mint_timestamp"), format_datetime_seconds(mint.timestamp), inline=True)
        if mint.transaction_hash:
            message.add_field(t("transaction"), mint.transaction_hash)
            message.rows.append(ActionRow([
                link_button(
                    t("btn_storyscan"),
                    STORYSCAN_TX_URL.format(mint.transaction_hash),
                    "storyscan",
                ),
            ]))
        if mint.owner_address:
            message.add_field(t("embed_owner"), mint.owner_address, inline=True)
        if mint.last_updated_at is not None:
            message.add_field(t("last_updated_metadata"), format_rfc3339(mint.last_updated_at), inline=True)
        if mint.time_last_updated is not None:
            message.add_field(t("last_updated_system"), format_rfc3339(mint.time_last_updated), inline=True)

        self._send(interaction, message)

    def handle_license_collection(self, interaction: Interaction, ip_id: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            asset = self._client.get_asset_by_id(ip_id)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if asset is None:
            self._send_not_found(interaction, t("title_collection"), t("no_collection"))
            return

        message = RichMessage(title=t("title_collection"), color=COLOR_LICENSE_COLLECTION)
        message.add_field(t("embed_id"), ip_id)

        contract = resolve_contract(asset)
        collection = resolve_collection(asset)
        if contract is not None:
            message.add_field(t("contract_name"), contract.name, inline=True)
            message.add_field(t("symbol"), contract.symbol, inline=True)
            if contract.address:
                message.add_field(t("contract_address"), contract.address)
            if contract.total_supply is not None:
                message.add_field(t("total_supply"), contract.total_supply + " NFTs", inline=True)
        # one-off NFTs have no collection name
        if collection is not None and collection.name:
            message.add_field(t("collection_name"), collection.name)
        else:
            message.add_field(t("collection_name"), NO_GLYPH)

        if interaction.user_id and contract is not None and contract.address:
            message.rows.append(ActionRow([
                Button(
                    label=t("btn_view_collection"),
                    action_id=collection_token(
                        CollectionAction.SHOW, contract.address, interaction.user_id
                    ),
                ),
            ]))

        self._send(interaction, message)

    # ------------------------------------------------------------------
    # Collection handlers
    # ------------------------------------------------------------------

    def handle_collection(self, interaction: Interaction, address: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            meta = self._client.get_collection_by_address(address)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if meta is None:
            self._send_not_found(interaction, t("title_collection"), t("not_found"))
            return

        message = RichMessage(
            title="{} {}".format(t("title_collection"), address),
            color=COLOR_COLLECTION,
        )
        message.add_field(t("name"), meta.name, inline=True)
        message.add_field(t("symbol"), meta.symbol, inline=True)
        if meta.total_supply is not None:
            message.add_field(t("total_supply"), meta.total_supply, inline=True)
        message.add_field(t("token_type"), meta.token_type, inline=True)
        if meta.created_at is not None:
            message.add_field(t("embed_created"), format_date(meta.created_at), inline=True)
        if meta.updated_at is not None:
            message.add_field(t("embed_updated"), format_date(meta.updated_at), inline=True)

        if interaction.user_id:
            message.rows.append(ActionRow([
                Button(
                    label=t("btn_disputes"),
                    action_id=collection_token(
                        CollectionAction.DISPUTES, address, interaction.user_id
                    ),
                ),
            ]))

        self._send(interaction, message)

    def handle_collection_disputes(self, interaction: Interaction, address: str) -> None:
        if not self._defer(interaction):
            return
        locale = self._locale(interaction)
        t = functools.partial(self._t, locale)

        try:
            item = self._client.get_collection_disputes(address)
        except StoryClientError as exc:
            self._send_error(interaction, locale, exc)
            return
        if item is None:
            self._send_not_found(interaction, t("title_disputes"), t("not_found"))
            return

        message = RichMessage(
            title="{}: {}".format(t("title_disputes"), address),
            color=COLOR_DISPUTES,
        )
        message.add_field(t("disputes_raised"), str(item.raised_dispute_count), inline=True)
        message.add_field(t("disputes_resolved"), str(item.resolved_dispute_count), inline=True)
        message.add_field(t("disputes_cancelled"), str(item.cancelled_dispute_count), inline=True)
        message.add_field(t("disputes_judged"), str(item.judged_dispute_count), inline=True)

        self._send(interaction, message)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locale(self, interaction: Interaction) -> str:
        return self._ctx.resolve_locale(interaction.locale)

    def _t(self, locale: str, key: str) -> str:
        return self._ctx.text(locale, key)

    def _defer(self, interaction: Interaction) -> bool:
        """Acknowledge; False only when the acknowledgment itself failed."""
        try:
            interaction.defer()
        except AlreadyAcknowledged:
            pass
        except DeliveryError:
            logger.exception("Failed to acknowledge interaction")
            return False
        return True

    def _reply(self, interaction: Interaction, text: str, ephemeral: bool = False) -> None:
        try:
            interaction.reply(text, ephemeral=ephemeral)
        except DeliveryError:
            logger.exception("Failed to send reply")

    def _send(self, interaction: Interaction, message: RichMessage) -> None:
        """Send a finalized message and schedule expiry if it has buttons."""
        locale = self._locale(interaction)
        finalize(message, self._t(locale, "footer"))
        try:
            ref = interaction.send(message)
        except DeliveryError:
            logger.exception("Failed to send message %r", message.title)
            # the caller still gets the content, privately
            text = self._t(locale, "delivery_failed")
            body = plain_text(message)
            if body:
                text = "{}\n\n{}".format(text, body)
            self._reply(interaction, text, ephemeral=True)
            return
        if ref is not None and message.has_buttons:
            self._schedule_expiry(interaction, ref)

    def _send_not_found(self, interaction: Interaction, title: str, text: str) -> None:
        self._send(interaction, RichMessage(title=title, description=text, color=COLOR_WARNING))

    def _send_error(self, interaction: Interaction, locale: str, exc: StoryClientError) -> None:
        if isinstance(exc, StoryAPIError) and exc.is_invalid_id():
            message = RichMessage(description=self._t(locale, "invalid_ip_id"), color=COLOR_WARNING)
        else:
            logger.warning("Story API call failed: %s", exc)
            message = RichMessage(
                title=self._t(locale, "title_error"),
                description=str(exc),
                color=COLOR_ERROR,
            )
        self._send(interaction, message)

    def _schedule_expiry(self, interaction: Interaction, ref: MessageRef) -> None:
        delay = float(self._ctx.settings.button_timeout_sec)
        self._schedule(delay, lambda: self.expire_message(interaction, ref))

    def expire_message(self, interaction: Interaction, ref: MessageRef) -> None:
        """Delete an expired message, falling back to disabling its buttons."""
        try:
            interaction.delete_message(ref)
            return
        except DeliveryError as exc:
            logger.debug(
                "Failed to delete message %s: %s, falling back to disabling buttons",
                ref.ts, exc,
            )
        try:
            interaction.disable_message(ref)
        except DeliveryError as exc:
            logger.debug("Failed to disable buttons on %s: %s", ref.ts, exc)
