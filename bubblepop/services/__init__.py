"""Collaborators the round engine calls out to: narration, cues, settings, progress.

Each is deliberately thin and replaceable; tests substitute recording fakes.
"""
