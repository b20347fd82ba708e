"""
Pydantic schema definitions for API payloads.

Schemas are kept apart from the SQLite tables so the API
representation can evolve independently of storage.
"""
