"""API Layer — ASGI middleware, error rendering, and FastAPI wiring.

Invariants:
    - Middleware registered explicitly in main.create_app (no auto-discovery)
    - Error responses are HTML or JSON depending on content negotiation

Design Decisions:
    - Thin adapters delegate to services (ADR: impureim sandwich)
"""
