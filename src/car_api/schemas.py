from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

# Upper bound of the INTEGER id columns.
MAX_ID = 2**31 - 1


class Car(BaseModel):
    id: int
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    deleted_flag: Optional[int] = None


class CarCreate(BaseModel):
    make: str = Field(..., description="Manufacturer")
    model: str = Field(..., description="Model name")
    year: int = Field(..., description="Model year")


class CarUpdate(BaseModel):
    """Full replacement of a car's fields; every field is required."""

    dbID: int = Field(..., le=MAX_ID, description="Id of the car to update")
    newMake: str
    newModel: str
    newYear: int


class Envelope(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None


class ErrorEnvelope(Envelope):
    success: bool = False
    errors: Optional[List[Any]] = None


class Credentials(BaseModel):
    userName: str = Field(..., min_length=1, description="Username")
    userKey: str = Field(..., min_length=1, description="Plaintext password")


class TokenResponse(BaseModel):
    jwt: str = Field(..., description="Signed bearer token")
    success: bool = True


class ConnectionCheck(BaseModel):
    connection: str = "successful"
    time: datetime
