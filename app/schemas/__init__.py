"""Pydantic schemas: entities, payloads, filters and pagination."""
