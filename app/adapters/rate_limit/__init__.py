"""Rate limiting adapters.

This package provides a small abstraction layer so submissions can be
throttled by an in-memory limiter today and by a shared store (e.g., Redis)
later without changing the API layer.
"""
