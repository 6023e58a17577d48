"""Database Primitives — declarative Base and portable column types.

Invariants:
    - Models import Base from db.base; nothing here opens connections
"""
