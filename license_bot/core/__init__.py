"""Slack-independent core: button tokens, formatters, and derived views."""
