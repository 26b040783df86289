"""Realtime presence, room relay and call signaling service."""
