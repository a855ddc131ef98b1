"""Domain types, boundary validation and the data access layer.

Modules:
- types: immutable engine inputs and outputs
- validation: boundary checks raising InputValidationError
- models: SQLAlchemy ORM tables
- db: engine and session helpers
- repositories: static data access helpers and snapshot assembly
"""

__all__ = [
    "types",
    "validation",
    "models",
    "db",
    "repositories",
]
