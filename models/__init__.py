"""Pydantic models for upstream API payloads."""
