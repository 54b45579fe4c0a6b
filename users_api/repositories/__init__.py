"""
Persistence adapters.

Today the collection lives in a single JSON file; services depend on the
storage object handed to them rather than touching the file themselves.
"""
