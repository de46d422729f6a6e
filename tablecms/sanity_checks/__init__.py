"""
Startup sanity checks (fail-fast).

Validates the target PostgreSQL database before the API starts serving.
"""
