from typing import List, Literal, Optional

from pydantic import BaseModel, Field

class TitleCreate(BaseModel):
    module_id: int
    title_name: str = Field(..., min_length=1, max_length=255)
    type: Literal["cours", "pw", "dw"]
    parent_id: Optional[int] = None


class TitleOut(BaseModel):
    id: int
    module_id: int
    type: str
    title_name: str
    parent_id: Optional[int] = None
    order: int

    class Config:
        from_attributes = True


class TitleProgressIn(BaseModel):
    session_id: int
    title_id: int
    is_completed: bool = True


class BulkTitleProgressIn(BaseModel):
    session_id: int
    title_ids: List[int] = Field(..., min_length=1)
    is_completed: bool = True
