"""Pydantic models for audit entries, alerts and request bodies."""
