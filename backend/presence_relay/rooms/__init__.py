"""Conversation-scoped relay."""
