"""
Car API backend.

Modules:
- config: environment settings and logging setup
- db: PostgreSQL connection pool + per-request sessions
- schema: table definitions
- cars / users: parameterized queries for each table
- auth_utils: password hashing and JWT helpers
- deps: per-request context (session + optional identity)
- schemas: Pydantic models for the REST API
- main: FastAPI application factory and routes
"""
