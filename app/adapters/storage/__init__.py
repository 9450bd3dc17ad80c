"""Signal storage adapters.

The moderation service depends on the abstract store only, so the JSON file
backend can later be replaced (e.g., by a database) without touching routes.
"""
