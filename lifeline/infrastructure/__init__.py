"""Infrastructure Layer — log sinks and process-wide logging setup.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Sink writes never block or raise into the request path
"""
