"""Private lending orchestrator: encrypted sessions, position authorization, fee reserves."""

__version__ = "0.1.0"
