"""sharegate: gated, short-id content sharing with lifecycle sweeping."""

__version__ = "0.1.0"
