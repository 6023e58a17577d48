"""Survey Engine — survey lifecycle, response collection, and AI-assisted review.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
