"""Storefront — cart, checkout and order pipeline for an online store.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
