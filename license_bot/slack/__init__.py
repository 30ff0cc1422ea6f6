"""Slack integration for the license bot.

WHY: Users query IP licenses with slash commands and follow-up buttons in
Slack. This package renders replies as Block Kit messages, routes
commands and clicks, and runs the Socket Mode app.

HOW: messages.py builds and renders RichMessages, router.py is the
platform-independent interaction state machine, bot.py adapts Bolt
payloads to it, and manifest.py declares the slash commands.

RULES:
- Socket Mode requires SLACK_BOT_TOKEN and SLACK_APP_TOKEN
- All Slack requests must be ack()'d within 3 seconds
"""
