"""
High-level use cases for the users API.

Routers (FastAPI endpoints) call these services instead of manipulating the
JSON collection directly.
"""
