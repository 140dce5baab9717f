"""Per-request dependencies.

Every routed request gets one ``RequestContext``: a database session checked
out for the request's lifetime and the optional identity of its bearer token.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from car_api.auth_utils import Identity, decode_identity, extract_token
from car_api.config import Settings
from car_api.db import DBSession


@dataclass(frozen=True)
class RequestContext:
    db: DBSession
    identity: Optional[Identity] = None


def get_db_session(request: Request) -> Iterator[DBSession]:
    """Yield a session from the application's pool; released when the request ends."""
    with request.app.state.db.session() as session:
        yield session


def get_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Optional[Identity]:
    """Identity from the Authorization header, or None. Never rejects the request."""
    return decode_identity(extract_token(authorization), request.app.state.settings)


# PUBLIC_INTERFACE
def get_request_context(
    session: DBSession = Depends(get_db_session),
    identity: Optional[Identity] = Depends(get_identity),
) -> RequestContext:
    """Build the typed context handed to route handlers."""
    return RequestContext(db=session, identity=identity)


# PUBLIC_INTERFACE
def require_identity(ctx: RequestContext) -> Identity:
    """Return the caller's identity or reject with 401."""
    if ctx.identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authorized!")
    return ctx.identity


# PUBLIC_INTERFACE
def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings
