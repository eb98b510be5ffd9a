"""Shehab - Slack project-manager bot."""

__version__ = "0.1.0"
