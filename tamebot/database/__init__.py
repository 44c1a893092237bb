"""Persistent schema for Tamebot."""
