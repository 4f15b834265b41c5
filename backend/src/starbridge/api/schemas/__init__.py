"""Pydantic payload models for inbound Socket.IO events."""
