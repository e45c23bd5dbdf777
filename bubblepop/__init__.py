"""Bubble Pop: round-lifecycle core for short educational pop-the-bubble games."""

__version__ = "0.1.0"
