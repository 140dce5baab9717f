"""Database schema for the car API.

Cars are never physically removed: ``deleted_flag`` is NULL for active rows and
set to 1 by a soft delete.
"""

from car_api.db import Database


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS car (
    id SERIAL PRIMARY KEY,
    make TEXT,
    model TEXT,
    year INTEGER,
    deleted_flag SMALLINT
);

CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    userkey TEXT NOT NULL
);
"""


# PUBLIC_INTERFACE
def init_schema(database: Database) -> None:
    """Create the car and users tables if they do not exist."""
    with database.session() as session:
        session.execute(SCHEMA_SQL)
