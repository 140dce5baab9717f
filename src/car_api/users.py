from typing import Any, Dict, Optional

from car_api.db import DBSession


INSERT_SQL = "INSERT INTO users (username, userkey) VALUES (%(username)s, %(userkey)s) RETURNING id"

GET_BY_USERNAME_SQL = "SELECT id, username, userkey FROM users WHERE username = %(username)s"


# PUBLIC_INTERFACE
def create(session: DBSession, username: str, userkey_hash: str) -> int:
    """Store a new user with an already hashed key and return its id."""
    row = session.execute_returning_one(INSERT_SQL, {"username": username, "userkey": userkey_hash})
    return int(row["id"])


# PUBLIC_INTERFACE
def get_by_username(session: DBSession, username: str) -> Optional[Dict[str, Any]]:
    """Return the user row for a username, or None."""
    return session.fetch_one(GET_BY_USERNAME_SQL, {"username": username})
