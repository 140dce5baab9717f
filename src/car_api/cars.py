"""Car resource store. One parameterized statement per operation."""

from typing import Any, Dict, List

from car_api.db import DBSession


LIST_ACTIVE_SQL = "SELECT id, make, model, year, deleted_flag FROM car WHERE deleted_flag IS NULL ORDER BY id"

INSERT_SQL = "INSERT INTO car (make, model, year) VALUES (%(make)s, %(model)s, %(year)s) RETURNING id"

SOFT_DELETE_SQL = "UPDATE car SET deleted_flag = 1 WHERE id = %(id)s"

UPDATE_SQL = "UPDATE car SET make = %(make)s, model = %(model)s, year = %(year)s WHERE id = %(id)s"


# PUBLIC_INTERFACE
def list_active(session: DBSession) -> List[Dict[str, Any]]:
    """Return every car that has not been soft-deleted."""
    return session.fetch_all(LIST_ACTIVE_SQL)


# PUBLIC_INTERFACE
def create(session: DBSession, make: str, model: str, year: int) -> int:
    """Insert a car and return its generated id."""
    row = session.execute_returning_one(INSERT_SQL, {"make": make, "model": model, "year": year})
    return int(row["id"])


# PUBLIC_INTERFACE
def soft_delete(session: DBSession, car_id: int) -> int:
    """Flag a car as deleted. Returns the number of rows affected (0 if no such id)."""
    return session.execute(SOFT_DELETE_SQL, {"id": car_id})


# PUBLIC_INTERFACE
def update(session: DBSession, car_id: int, make: str, model: str, year: int) -> int:
    """Overwrite make, model and year of a car. Returns the number of rows affected."""
    return session.execute(UPDATE_SQL, {"id": car_id, "make": make, "model": model, "year": year})
