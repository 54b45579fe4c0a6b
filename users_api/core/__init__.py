"""
Core utilities shared across the users API.

Configuration (env vars, data file path, CORS origins) and logging setup
live here so routers/services never read os.environ directly.
"""
