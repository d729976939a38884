"""Core Layer — pure store logic, no IO.

Invariants:
    - No module in core/ imports from services/ or infrastructure/
    - Adapters are reached only through the Protocols in adapter_protocols.py
"""
