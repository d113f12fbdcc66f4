"""staffdb package initializer

Holds the startup sequence (configuration, MongoDB connection, readiness)
and the employee collection schema used by the API in `api/`.
"""

__all__ = [
    "bootstrap",
    "config",
    "connect_db",
    "create_collections",
    "errors",
    "schema",
]
