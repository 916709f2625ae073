"""Messaging: Redis pub/sub domain event source."""
