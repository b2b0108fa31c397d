"""
Tier Engine Package.

FastAPI service and library for customer tier transition analytics and
concurrency-safe customer assignment.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, dependencies and errors
    - models: Pydantic schemas and enums
    - services: Tier analytics and assignment workflow
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
