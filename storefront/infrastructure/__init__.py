"""Infrastructure Layer — database engine, logging setup and the payment stub.

Invariants:
    - Infrastructure never imports from services/ or api/
"""
