"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate SHAPE at the system boundary; domain rules (quantity > 0,
      stock, ownership) are enforced by core/ and services/
    - Domain types from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
