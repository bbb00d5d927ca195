"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (host input, API responses)

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
