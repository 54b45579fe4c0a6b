"""Users API: REST resource over a JSON-file backed collection of user records."""
