"""Tests for the Slack adapter, app wiring, manifest, and CLI.

WHY: Validates that Bolt command and block_actions payloads are read
correctly, that acknowledgments and Slack API calls happen in the right
order, and that Slack API failures surface as DeliveryError.

HOW: Uses unittest.mock for Bolt's ack function, the Slack WebClient,
and the Bolt App class. No Slack connection is ever opened.

RULES:
- Slack WebClient is always mocked (no real Slack API calls)
- Each test is independent
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from slack_sdk.errors import SlackApiError

from conftest import IP_ID, USER_ID
from license_bot.cli import main as cli_main
from license_bot.slack.bot import (
    LINK_ACTION_PATTERN,
    TOKEN_ACTION_PATTERN,
    SlackInteraction,
    create_app,
)
from license_bot.slack.manifest import build_manifest
from license_bot.slack.messages import ActionRow, Button, RichMessage, to_slack_payload
from license_bot.slack.router import (
    COMMANDS,
    AlreadyAcknowledged,
    DeliveryError,
    MessageRef,
)


VALID_ENV = {
    "LOCALE": "en",
    "DB_DRIVER": "sqlite3",
    "DB_NAME": "licensebot",
    "SLACK_BOT_TOKEN": "xoxb-1",
    "SLACK_APP_TOKEN": "xapp-1",
    "STORY_API_KEY": "key",
    "STORY_API_BASE_URL": "https://api.example.test",
}


def _command_body(text=IP_ID, command="/license"):
    return {
        "command": command,
        "text": text,
        "user_id": USER_ID,
        "channel_id": "C42",
        "response_url": "https://hooks.slack.test/commands/1",
    }


def _action_body(action_id="lic:terms:{}:{}".format(IP_ID, USER_ID)):
    message = RichMessage(title="License")
    message.rows.append(ActionRow([Button(label="Terms", action_id=action_id)]))
    payload = to_slack_payload(message)
    return {
        "type": "block_actions",
        "user": {"id": USER_ID},
        "channel": {"id": "C42"},
        "message": dict(payload, ts="1700000000.000100"),
        "actions": [{"action_id": action_id, "type": "button"}],
    }


def _slack_error(error="channel_not_found"):
    return SlackApiError("The request to the Slack API failed.", {"ok": False, "error": error})


@pytest.fixture
def slack_client():
    client = MagicMock()
    client.chat_postMessage.return_value = {"ok": True, "channel": "C42", "ts": "1700000000.000200"}
    return client


# ---------------------------------------------------------------------------
# Tests: payload accessors
# ---------------------------------------------------------------------------


class TestPayloadAccessors:

    def test_slash_command(self, slack_client):
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body("  abc  def "))
        assert interaction.command_name == "license"
        assert interaction.options == ["abc", "def"]
        assert interaction.custom_id == ""
        assert interaction.user_id == USER_ID

    def test_empty_command_text(self, slack_client):
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body(""))
        assert interaction.options == []

    def test_block_action(self, slack_client):
        interaction = SlackInteraction(MagicMock(), slack_client, _action_body())
        assert interaction.custom_id == "lic:terms:{}:{}".format(IP_ID, USER_ID)
        assert interaction.command_name == ""
        assert interaction.user_id == USER_ID

    def test_locale_from_payload(self, slack_client):
        body = _command_body()
        body["locale"] = "ru-RU"
        assert SlackInteraction(MagicMock(), slack_client, body).locale == "ru-RU"


# ---------------------------------------------------------------------------
# Tests: acknowledgment and replies
# ---------------------------------------------------------------------------


class TestAcknowledge:

    def test_defer_acks_once(self, slack_client):
        ack = MagicMock()
        interaction = SlackInteraction(ack, slack_client, _command_body())
        interaction.defer()
        ack.assert_called_once_with()
        with pytest.raises(AlreadyAcknowledged):
            interaction.defer()
        assert ack.call_count == 1

    def test_reply_before_defer_uses_ack(self, slack_client):
        ack = MagicMock()
        interaction = SlackInteraction(ack, slack_client, _command_body(""))
        interaction.reply("Please provide an ID or address.")
        ack.assert_called_once_with(
            text="Please provide an ID or address.", response_type="in_channel",
        )
        slack_client.chat_postMessage.assert_not_called()

    def test_ephemeral_reply_after_defer(self, slack_client):
        ack = MagicMock()
        interaction = SlackInteraction(ack, slack_client, _action_body())
        interaction.defer()
        interaction.reply("nope", ephemeral=True)
        slack_client.chat_postEphemeral.assert_called_once_with(
            channel="C42", user=USER_ID, text="nope",
        )

    def test_action_reply_acks_then_posts(self, slack_client):
        ack = MagicMock()
        interaction = SlackInteraction(ack, slack_client, _action_body("garbage"))
        interaction.reply("This button is invalid or outdated.")
        ack.assert_called_once_with()
        slack_client.chat_postMessage.assert_called_once_with(
            channel="C42", text="This button is invalid or outdated.",
        )

    def test_reply_failure_is_delivery_error(self, slack_client):
        slack_client.chat_postMessage.side_effect = _slack_error()
        interaction = SlackInteraction(MagicMock(), slack_client, _action_body())
        interaction.defer()
        with pytest.raises(DeliveryError):
            interaction.reply("hello")

    def test_ephemeral_reply_after_defer_uses_respond(self, slack_client):
        respond = MagicMock()
        respond.return_value.status_code = 200
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body(), respond)
        interaction.defer()
        interaction.reply("I couldn't post here.", ephemeral=True)
        respond.assert_called_once_with(text="I couldn't post here.", response_type="ephemeral")
        slack_client.chat_postEphemeral.assert_not_called()

    def test_respond_failure_is_delivery_error(self, slack_client):
        respond = MagicMock()
        respond.return_value.status_code = 404
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body(), respond)
        interaction.defer()
        with pytest.raises(DeliveryError, match="404"):
            interaction.reply("hello", ephemeral=True)

    def test_public_reply_ignores_respond(self, slack_client):
        respond = MagicMock()
        interaction = SlackInteraction(MagicMock(), slack_client, _action_body(), respond)
        interaction.defer()
        interaction.reply("hello")
        respond.assert_not_called()
        slack_client.chat_postMessage.assert_called_once_with(channel="C42", text="hello")


# ---------------------------------------------------------------------------
# Tests: sending and message lifecycle
# ---------------------------------------------------------------------------


class TestSend:

    def test_send_posts_payload(self, slack_client):
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body())
        message = RichMessage(title="License")
        ref = interaction.send(message)

        kwargs = slack_client.chat_postMessage.call_args.kwargs
        assert kwargs["channel"] == "C42"
        assert kwargs["text"] == "License"
        assert len(kwargs["attachments"]) == 1
        assert ref.channel == "C42"
        assert ref.ts == "1700000000.000200"
        assert ref.payload["text"] == "License"

    def test_send_failure(self, slack_client):
        slack_client.chat_postMessage.side_effect = _slack_error("not_in_channel")
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body())
        with pytest.raises(DeliveryError, match="not_in_channel"):
            interaction.send(RichMessage(title="x"))

    def test_disable_source_buttons(self, slack_client):
        interaction = SlackInteraction(MagicMock(), slack_client, _action_body())
        interaction.disable_source_buttons()

        kwargs = slack_client.chat_update.call_args.kwargs
        assert kwargs["channel"] == "C42"
        assert kwargs["ts"] == "1700000000.000100"
        assert [b["type"] for b in kwargs["blocks"]] == ["context"]
        assert kwargs["attachments"]

    def test_disable_source_without_buttons_is_noop(self, slack_client):
        body = _action_body()
        body["message"]["blocks"] = []
        SlackInteraction(MagicMock(), slack_client, body).disable_source_buttons()
        slack_client.chat_update.assert_not_called()

    def test_delete_message(self, slack_client):
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body())
        interaction.delete_message(MessageRef(channel="C42", ts="1.2"))
        slack_client.chat_delete.assert_called_once_with(channel="C42", ts="1.2")

    def test_delete_failure(self, slack_client):
        slack_client.chat_delete.side_effect = _slack_error("cant_delete_message")
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body())
        with pytest.raises(DeliveryError):
            interaction.delete_message(MessageRef(channel="C42", ts="1.2"))

    def test_disable_message_reissues_payload(self, slack_client):
        message = RichMessage(title="License")
        message.rows.append(ActionRow([Button(label="Terms", action_id="lic:terms:ip:U1")]))
        payload = to_slack_payload(message)
        interaction = SlackInteraction(MagicMock(), slack_client, _command_body())
        interaction.disable_message(MessageRef(channel="C42", ts="1.2", payload=payload))

        kwargs = slack_client.chat_update.call_args.kwargs
        assert kwargs["ts"] == "1.2"
        assert kwargs["text"] == "License"
        assert kwargs["blocks"][0]["type"] == "context"
        # the stored payload is left untouched
        assert payload["blocks"][0]["type"] == "actions"


# ---------------------------------------------------------------------------
# Tests: app wiring
# ---------------------------------------------------------------------------


class TestCreateApp:

    @patch("license_bot.slack.bot.App")
    def test_registers_every_command(self, mock_app_cls):
        app = mock_app_cls.return_value
        create_app(MagicMock(), bot_token="xoxb-test")

        mock_app_cls.assert_called_once_with(token="xoxb-test")
        registered = [c.args[0] for c in app.command.call_args_list]
        assert registered == ["/" + name for name in COMMANDS]
        assert app.action.call_count == 2

    @patch("license_bot.slack.bot.App")
    def test_command_listener_routes(self, mock_app_cls):
        app = mock_app_cls.return_value
        router = MagicMock()
        create_app(router, bot_token="xoxb-test")

        listener = app.command.return_value.call_args_list[0].args[0]
        respond = MagicMock()
        listener(ack=MagicMock(), command=_command_body(), client=MagicMock(), respond=respond)

        interaction = router.handle_command.call_args.args[0]
        assert isinstance(interaction, SlackInteraction)
        assert interaction.options == [IP_ID]
        assert interaction._respond is respond

    def test_action_patterns(self):
        assert LINK_ACTION_PATTERN.match("link:play")
        assert not LINK_ACTION_PATTERN.match("lic:terms:ip:U1")
        assert TOKEN_ACTION_PATTERN.match("lic:terms:ip:U1")
        assert TOKEN_ACTION_PATTERN.match("garbage")
        assert not TOKEN_ACTION_PATTERN.match("link:storyscan")


# ---------------------------------------------------------------------------
# Tests: manifest and CLI
# ---------------------------------------------------------------------------


class TestManifest:

    def test_declares_every_command(self):
        manifest = build_manifest()
        commands = manifest["features"]["slash_commands"]
        assert [c["command"] for c in commands] == ["/" + name for name in COMMANDS]
        assert all(c["description"] for c in commands)

    def test_socket_mode_and_interactivity(self):
        settings = build_manifest()["settings"]
        assert settings["socket_mode_enabled"] is True
        assert settings["interactivity"]["is_enabled"] is True

    def test_app_name(self):
        assert build_manifest("Story Bot")["display_information"]["name"] == "Story Bot"


class TestCli:

    def test_manifest_flag(self, capsys):
        assert cli_main(["--manifest"]) == 0
        manifest = json.loads(capsys.readouterr().out)
        assert len(manifest["features"]["slash_commands"]) == len(COMMANDS)

    def test_invalid_config_exits_2(self, capsys, monkeypatch):
        for name in ("LOCALE", "SLACK_BOT_TOKEN", "STORY_API_KEY", "DB_NAME"):
            monkeypatch.delenv(name, raising=False)
        assert cli_main(["--check-config"]) == 2
        assert "Invalid configuration" in capsys.readouterr().err

    @patch("license_bot.slack.bot.run")
    def test_runs_bot_with_valid_config(self, mock_run, monkeypatch):
        for name, value in VALID_ENV.items():
            monkeypatch.setenv(name, value)
        assert cli_main([]) == 0
        settings = mock_run.call_args.args[0]
        assert settings.slack_app_token == "xapp-1"

    @patch("license_bot.slack.bot.run")
    def test_check_config_valid(self, mock_run, capsys, monkeypatch):
        for name, value in VALID_ENV.items():
            monkeypatch.setenv(name, value)
        assert cli_main(["--check-config"]) == 0
        assert "Configuration OK" in capsys.readouterr().err
        mock_run.assert_not_called()
