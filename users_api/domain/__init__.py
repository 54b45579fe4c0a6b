"""Domain rules for user records (validation, uniqueness, matching)."""
