from typing import Literal

from pydantic import BaseModel, Field

class LoginIn(BaseModel):
    matricule: str = Field(..., min_length=1, max_length=30)
    password: str = Field(..., min_length=1, max_length=128)
    role: Literal["student", "professor"] = "student"

class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    matricule: str
