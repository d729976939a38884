"""Services Layer — the store engine, hook dispatch and periodic sync.

Invariants:
    - Services reach storage only through the adapter Protocols
"""
