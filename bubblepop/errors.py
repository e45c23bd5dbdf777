from __future__ import annotations


class BubblePopError(Exception):
    """Base class for errors raised by bubblepop."""


class UnknownVariantError(BubblePopError, KeyError):
    """Raised when a game name does not map to a VariantDescriptor."""

    def __init__(self, name: object) -> None:
        super().__init__("Unknown game variant: {!r}".format(name))
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class SettingsError(BubblePopError):
    """Raised by strict settings loads when the file cannot be parsed."""
