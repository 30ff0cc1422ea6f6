"""Rich message model and Block Kit rendering for the Slack bot.

WHY: Every reply is a colored card (title, description, fields, footer)
with optional rows of buttons. Building replies as small dataclasses and
rendering them in one place keeps the router free of Block Kit details
and enforces the platform limits in one spot.

HOW: RichMessage collects fields and button rows. finalize() applies the
branded footer and drops fields beyond MAX_FIELDS. to_slack_payload()
renders the card as a colored attachment and the buttons as top-level
``actions`` blocks. disable_blocks() rewrites the ``actions`` blocks of an
existing message into inert context blocks, which is how a message's
buttons are "disabled" (Block Kit buttons have no disabled state).

RULES:
- At most MAX_FIELDS fields per message; extra fields are dropped silently
- Inline fields are grouped into section.fields (10 per section)
- Link buttons carry an action_id prefixed with LINK_ACTION_PREFIX and
  are only acknowledged by the bot
- Text is clipped to the Block Kit length limits
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List

MAX_FIELDS = 25

LINK_ACTION_PREFIX = "link:"

COLOR_SUCCESS = 0x00FF00
COLOR_WARNING = 0xFFFF00
COLOR_ERROR = 0xFF0000
COLOR_CAUTION = 0xFFAA00
COLOR_TERMS = 0x00AAFF
COLOR_MINT = 0x0099FF
COLOR_LICENSE_COLLECTION = 0x00CC99
COLOR_COLLECTION = 0x0055FF
COLOR_DISPUTES = 0x00AA00

_HEADER_LIMIT = 150
_SECTION_TEXT_LIMIT = 3000
_FIELD_TEXT_LIMIT = 2000
_BUTTON_LABEL_LIMIT = 75
_FIELDS_PER_SECTION = 10

_EMPTY_VALUE = "-"


@dataclass
class Field:
    name: str
    value: str
    inline: bool = False


@dataclass
class Button:
    """A button: interactive when action_id is a token, a link when url is set."""

    label: str
    action_id: str = ""
    url: str = ""
    primary: bool = False
    disabled: bool = False


@dataclass
class ActionRow:
    buttons: List[Button] = field(default_factory=list)


@dataclass
class RichMessage:
    """A colored card with fields and optional button rows."""

    title: str = ""
    description: str = ""
    color: int = COLOR_SUCCESS
    fields: List[Field] = field(default_factory=list)
    footer: str = ""
    rows: List[ActionRow] = field(default_factory=list)

    def add_field(self, name: str, value: str, inline: bool = False) -> None:
        self.fields.append(Field(name=name, value=value, inline=inline))

    @property
    def has_buttons(self) -> bool:
        return any(row.buttons for row in self.rows)


def finalize(message: RichMessage, footer: str) -> RichMessage:
    """Apply the branded footer and cap the field list at MAX_FIELDS."""
    message.footer = footer
    if len(message.fields) > MAX_FIELDS:
        message.fields = message.fields[:MAX_FIELDS]
    return message


def link_button(label: str, url: str, name: str) -> Button:
    return Button(label=label, url=url, action_id=LINK_ACTION_PREFIX + name)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def to_slack_payload(message: RichMessage) -> Dict[str, Any]:
    """Render a message into chat_postMessage / chat_update keyword arguments."""
    return {
        "text": fallback_text(message),
        "attachments": [render_attachment(message)],
        "blocks": render_action_blocks(message.rows),
    }


def fallback_text(message: RichMessage) -> str:
    return _clip(message.title or message.description or " ", _SECTION_TEXT_LIMIT)


def plain_text(message: RichMessage) -> str:
    """Title, description and "name: value" field lines as one text block."""
    lines = [part for part in (message.title, message.description) if part]
    for item in message.fields:
        lines.append("{}: {}".format(item.name, item.value if item.value else _EMPTY_VALUE))
    return "\n".join(lines)


def render_attachment(message: RichMessage) -> Dict[str, Any]:
    """Render title, description, fields and footer as one colored attachment."""
    blocks: List[Dict[str, Any]] = []

    if message.title:
        blocks.append({
            "type": "header",
            "text": {"type": "plain_text", "text": _clip(message.title, _HEADER_LIMIT)},
        })

    if message.description:
        blocks.append(_mrkdwn_section(message.description))

    inline_run: List[Field] = []
    for item in message.fields:
        if item.inline:
            inline_run.append(item)
            continue
        blocks.extend(_inline_sections(inline_run))
        inline_run = []
        blocks.append(_mrkdwn_section(_field_text(item)))
    blocks.extend(_inline_sections(inline_run))

    if message.footer:
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": message.footer}],
        })

    return {
        "color": "#{:06x}".format(message.color & 0xFFFFFF),
        "fallback": fallback_text(message),
        "blocks": blocks,
    }


def render_action_blocks(rows: List[ActionRow]) -> List[Dict[str, Any]]:
    """Render button rows as ``actions`` blocks (disabled rows as context)."""
    blocks: List[Dict[str, Any]] = []
    for row in rows:
        if not row.buttons:
            continue
        if all(b.disabled for b in row.buttons):
            blocks.append(_disabled_context([b.label for b in row.buttons]))
            continue
        blocks.append({
            "type": "actions",
            "elements": [_render_button(b) for b in row.buttons if not b.disabled],
        })
    return blocks


def _render_button(button: Button) -> Dict[str, Any]:
    element: Dict[str, Any] = {
        "type": "button",
        "text": {"type": "plain_text", "text": _clip(button.label, _BUTTON_LABEL_LIMIT)},
        "action_id": button.action_id,
    }
    if button.url:
        element["url"] = button.url
    if button.primary:
        element["style"] = "primary"
    return element


def disable_blocks(blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return a copy of ``blocks`` with every ``actions`` block made inert.

    Idempotent: blocks that are already disabled are left unchanged.
    """
    out: List[Dict[str, Any]] = []
    for block in blocks or []:
        if block.get("type") != "actions":
            out.append(copy.deepcopy(block))
            continue
        labels = [
            el.get("text", {}).get("text", "")
            for el in block.get("elements", [])
            if el.get("type") == "button"
        ]
        out.append(_disabled_context(labels))
    return out


def has_action_blocks(blocks: List[Dict[str, Any]]) -> bool:
    return any(block.get("type") == "actions" for block in blocks or [])


def _disabled_context(labels: List[str]) -> Dict[str, Any]:
    text = "  ".join("~{}~".format(label) for label in labels if label) or _EMPTY_VALUE
    return {
        "type": "context",
        "elements": [{"type": "mrkdwn", "text": text}],
    }


def _field_text(item: Field) -> str:
    return "*{}*\n{}".format(item.name, item.value if item.value else _EMPTY_VALUE)


def _mrkdwn_section(text: str) -> Dict[str, Any]:
    return {
        "type": "section",
        "text": {"type": "mrkdwn", "text": _clip(text, _SECTION_TEXT_LIMIT)},
    }


def _inline_sections(items: List[Field]) -> List[Dict[str, Any]]:
    sections = []
    for start in range(0, len(items), _FIELDS_PER_SECTION):
        chunk = items[start:start + _FIELDS_PER_SECTION]
        sections.append({
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": _clip(_field_text(item), _FIELD_TEXT_LIMIT)}
                for item in chunk
            ],
        })
    return sections


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"
