"""Pydantic models shared by the conversion pipeline, storage and API."""
