"""Infrastructure Layer — durable storage adapters and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/
    - Every storage failure is mapped to a KVStoreError before leaving this layer
"""
