"""Services Layer — lifecycle writes, read queries, and the AI assistant.

Invariants:
    - Services load aggregates through the SurveyRepository protocol
    - Every write goes through ResponseLifecycleService's compare-and-swap loop
"""
