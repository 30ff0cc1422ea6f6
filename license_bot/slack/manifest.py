"""Slack app manifest for the bot's slash commands.

Slack registers slash commands through the app manifest rather than at
runtime, so the command catalogue lives here, next to the listeners that
serve it. ``python -m license_bot --manifest`` prints it as JSON for
pasting into the app configuration page.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from license_bot.slack.router import COMMANDS

# command name -> (description, usage hint)
COMMAND_DESCRIPTIONS: Dict[str, Tuple[str, str]] = {
    "license": ("Check license by IP ID", "[ip_id]"),
    "license_terms": ("Show license terms", "[ip_id]"),
    "license_infringement": ("Show infringement status", "[ip_id]"),
    "license_moderation": ("Show moderation safety", "[ip_id]"),
    "license_mint": ("Show mint info", "[ip_id]"),
    "license_collection": ("Show collection/contract info for license", "[ip_id]"),
    "collection": ("Get collection info by contract address", "[address]"),
    "collection_disputes": ("Get collection disputes counters", "[address]"),
}

BOT_SCOPES = ["commands", "chat:write", "chat:write.public"]


def slash_commands() -> List[Dict[str, Any]]:
    commands = []
    for name in COMMANDS:
        description, hint = COMMAND_DESCRIPTIONS[name]
        commands.append({
            "command": "/" + name,
            "description": description,
            "usage_hint": hint,
            "should_escape": False,
        })
    return commands


def build_manifest(app_name: str = "License Bot") -> Dict[str, Any]:
    """Return a Socket Mode app manifest declaring every slash command."""
    return {
        "display_information": {"name": app_name},
        "features": {
            "bot_user": {"display_name": app_name, "always_online": True},
            "slash_commands": slash_commands(),
        },
        "oauth_config": {"scopes": {"bot": list(BOT_SCOPES)}},
        "settings": {
            "interactivity": {"is_enabled": True},
            "socket_mode_enabled": True,
            "org_deploy_enabled": False,
            "token_rotation_enabled": False,
        },
    }
