"""Stored per-client platform credentials."""
