from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict

from portal.utils.dates import to_naive_utc

# Incoming timestamps are normalised to naive UTC before they reach the database
UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    success: bool = False
    error_code: str
    detail: str
    details: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserBrief(ORMModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
