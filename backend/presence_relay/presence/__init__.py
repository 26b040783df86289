"""Presence registry and connection lifecycle."""
