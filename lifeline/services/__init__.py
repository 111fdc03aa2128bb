"""Services Layer — request-lifecycle orchestration around the pure core.

Invariants:
    - LogHandler owns timing and emission; ErrorDispatcher owns handler invocation
    - Neither service imports FastAPI or Starlette
"""
