"""Tamebot: mount encounter and taming game for Discord."""

__version__ = "1.0.0"
