"""Core Layer — pure catalog, cart and draft logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic: state in, new state out

Design Decisions:
    - Functional core separated from imperative shell (ADR: explicit state objects
      passed to update functions; the session layer owns the single live instance)
"""
