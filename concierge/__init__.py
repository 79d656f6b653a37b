"""Concierge — conversational assistant client."""

__version__ = "0.1.0"
