"""Database schema helpers for the relational adapter."""
