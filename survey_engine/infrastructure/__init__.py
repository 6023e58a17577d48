"""Infrastructure Layer — database sessions, repository, AI client, and logging.

Invariants:
    - All external calls wrapped with retry/timeout/error mapping
    - Driver exceptions never escape; they surface as SurveyEngineError subclasses
"""
