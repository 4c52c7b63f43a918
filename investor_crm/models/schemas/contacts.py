"""
Contact Schemas
"""
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError


def _check_email(value):
    if value is None or value == "":
        return None
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email", "Invalid email")
    return value


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    title: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    is_primary: bool = False

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return _check_email(value)


class ContactUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    title: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    is_primary: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return _check_email(value)
