"""Services Layer — async orchestration of the core rules over an AsyncSession.

Invariants:
    - Expected failures are returned as Result, never raised
    - Each service is constructed per request around the request's session
"""
