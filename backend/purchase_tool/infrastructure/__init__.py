"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure implements core protocols; it never holds domain state
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients (ADR: single responsibility)
"""
