"""availchat: natural-language assistant for managing appointment availability."""

__version__ = "0.1.0"
