"""API Layer — FastAPI routes, identity dependencies, and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON responses
    - Routes delegate to services; lifecycle rules live in core/
"""
