from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

class SelectSessionIn(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=30)
    attendance_id: int
    occurrence_id: int


class EnrollmentOut(BaseModel):
    success: bool = True
    status: str
    record_id: str
    occurrence_id: Optional[int] = None
    session_id: Optional[int] = None


class AbsenceRateOut(BaseModel):
    success: bool = True
    student_id: str
    semester_id: Optional[int] = None
    absence_rate: int = Field(..., ge=0, le=100)


class DecisionIn(BaseModel):
    approve: bool


class CompensationRequestOut(BaseModel):
    id: str
    occurrence_id: int
    attendance_id: int
    status: str
    created_at: datetime
    decided_at: Optional[datetime] = None

    class Config:
        from_attributes = True
