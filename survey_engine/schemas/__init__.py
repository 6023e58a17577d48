"""Pydantic Schemas — request validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary (user input)
    - Separate from models: schemas are API contracts, models are persistence
"""
