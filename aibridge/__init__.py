"""AI Bridge - stage project files for an external AI chat and apply its JSON edits back."""

__version__ = "0.1.0"
