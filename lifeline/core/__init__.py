"""Core Layer — pure formatting, error taxonomy, and dispatch resolution.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - No IO, no clocks, no async: time and elapsed spans are passed in

Design Decisions:
    - Functional core separated from the middleware shell (ADR: impureim sandwich)
"""
