import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psycopg2
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from car_api import cars, users
from car_api.auth_utils import create_user_access_token, hash_password, verify_password
from car_api.config import Settings
from car_api.db import Database
from car_api.deps import RequestContext, get_request_context, get_settings, require_identity
from car_api.schemas import (
    MAX_ID,
    Car,
    CarCreate,
    CarUpdate,
    ConnectionCheck,
    Credentials,
    Envelope,
    ErrorEnvelope,
    TokenResponse,
)

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Connectivity check."},
    {"name": "Auth", "description": "Registration and login."},
    {"name": "Cars", "description": "Car CRUD; requires a bearer token."},
]

router = APIRouter()

LOGIN_FAILED = "Username or password is incorrect."

CAR_ERRORS = {401: {"model": ErrorEnvelope}, 422: {"model": ErrorEnvelope}, 500: {"model": ErrorEnvelope}}
AUTH_ERRORS = {422: {"model": ErrorEnvelope}, 500: {"model": ErrorEnvelope}}


def _server_error(msg: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=msg)


def _error_body(message: str, errors: Optional[List[Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message, "data": None}
    if errors is not None:
        body["errors"] = errors
    return body


# =========================
# Health
# =========================

@router.get("/test", response_model=ConnectionCheck, tags=["Health"], summary="Connectivity check")
def connection_test() -> ConnectionCheck:
    """Acknowledge the request and report the server time."""
    logger.info("Connection made...")
    return ConnectionCheck(connection="successful", time=datetime.now(timezone.utc))


# =========================
# Cars
# =========================

@router.get("/cars", response_model=List[Car], responses=CAR_ERRORS, tags=["Cars"], summary="List cars")
def list_cars(ctx: RequestContext = Depends(get_request_context)) -> List[Dict[str, Any]]:
    """List every car that has not been deleted."""
    require_identity(ctx)
    try:
        return cars.list_active(ctx.db)
    except psycopg2.Error:
        logger.exception("Listing cars failed")
        raise _server_error("Server failed to gather data from the car table.")


@router.post("/car", response_model=Envelope, responses=CAR_ERRORS, tags=["Cars"], summary="Create car")
def create_car(payload: CarCreate, ctx: RequestContext = Depends(get_request_context)) -> Envelope:
    """Insert a car. The generated id is not returned."""
    user = require_identity(ctx)
    try:
        car_id = cars.create(ctx.db, payload.make, payload.model, payload.year)
    except (psycopg2.Error, RuntimeError):
        logger.exception("Creating car failed")
        raise _server_error("Server failed to insert data into the car table.")
    logger.info("User %s created car %s", user.user_id, car_id)
    return Envelope(success=True, message="Car successfully created", data=None)


@router.delete("/car/{car_id}", response_model=str, responses=CAR_ERRORS, tags=["Cars"], summary="Soft-delete car")
def delete_car(car_id: int = Path(..., le=MAX_ID), ctx: RequestContext = Depends(get_request_context)) -> str:
    """Flag a car as deleted. Unknown ids are accepted without error."""
    require_identity(ctx)
    try:
        affected = cars.soft_delete(ctx.db, car_id)
    except psycopg2.Error:
        logger.exception("Deleting car %s failed", car_id)
        raise _server_error("Server failed to update data in the car table.")
    logger.debug("Soft delete of car %s affected %s row(s)", car_id, affected)
    return f"Successfully deleted data associated with id: {car_id}."


@router.put("/car", response_model=str, responses=CAR_ERRORS, tags=["Cars"], summary="Replace car fields")
def update_car(payload: CarUpdate, ctx: RequestContext = Depends(get_request_context)) -> str:
    """Overwrite make, model and year of a car."""
    require_identity(ctx)
    try:
        affected = cars.update(ctx.db, payload.dbID, payload.newMake, payload.newModel, payload.newYear)
    except psycopg2.Error:
        logger.exception("Updating car %s failed", payload.dbID)
        raise _server_error("Server failed to update data in the car table.")
    logger.debug("Update of car %s affected %s row(s)", payload.dbID, affected)
    return f"Successfully updated data associated with id: {payload.dbID}."


# =========================
# Auth
# =========================

@router.post("/register", response_model=TokenResponse, responses=AUTH_ERRORS, tags=["Auth"], summary="Register")
def register(
    payload: Credentials,
    ctx: RequestContext = Depends(get_request_context),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    """Create a user and return a token for it."""
    try:
        user_id = users.create(ctx.db, payload.userName, hash_password(payload.userKey))
    except (psycopg2.Error, RuntimeError):
        logger.exception("Registering user failed")
        raise _server_error("Server failed to register new user.")
    return TokenResponse(jwt=create_user_access_token(user_id, payload.userName, settings))


@router.post(
    "/log-in",
    response_model=TokenResponse,
    responses={401: {"model": ErrorEnvelope}, **AUTH_ERRORS},
    tags=["Auth"],
    summary="Log in",
)
def log_in(
    payload: Credentials,
    ctx: RequestContext = Depends(get_request_context),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    """Check a username/password pair and return a token."""
    try:
        user = users.get_by_username(ctx.db, payload.userName)
    except psycopg2.Error:
        logger.exception("Looking up user failed")
        raise _server_error("Server failed to log in user.")

    # Unknown user and wrong password are reported identically.
    if not user or not verify_password(payload.userKey, str(user["userkey"])):
        logger.info("Rejected log-in attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=LOGIN_FAILED)

    return TokenResponse(jwt=create_user_access_token(int(user["id"]), user["username"], settings))


# =========================
# Application
# =========================

async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_body("Invalid request.", jsonable_encoder(exc.errors())),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Internal server error."))


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the API application.

    When no database is given, the pool is created from the settings on startup
    and closed on shutdown.
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Car API",
        description=(
            "CRUD over cars plus username/password registration and login.\n\n"
            "Auth: send the token from /register or /log-in in the `Authorization` header."
        ),
        version="1.0.0",
        openapi_tags=openapi_tags,
        # One session and identity per routed request, shared with the handler.
        dependencies=[Depends(get_request_context)],
    )
    app.state.settings = settings
    app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.include_router(router)

    owns_database = database is None

    @app.on_event("startup")
    def _startup() -> None:
        if app.state.db is None:
            logger.info("Opening database pool")
            app.state.db = Database.from_settings(settings)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        if owns_database and app.state.db is not None:
            logger.info("Closing database pool")
            app.state.db.close()
            app.state.db = None

    return app
