"""License Bot: Slack lookups for IP asset licenses.

WHY: People discussing IP assets in Slack want license terms, infringement
checks, moderation verdicts, and mint records without leaving the channel.
This package answers slash commands and button clicks by querying the
Story asset API and rendering the records as rich Slack messages.

HOW: Three layers: the API client (HTTP + typed records), the core
(pure formatters, derived views, button tokens), and the Slack layer
(message rendering, the interaction router, and the Bolt app).

RULES:
- The API client is the only code that talks HTTP to the asset API
- Core modules are pure and have no Slack or HTTP imports
- All shared state lives in one AppContext built at startup
"""

__version__ = "0.1.0"
