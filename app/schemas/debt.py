from pydantic import BaseModel

class RegisterDebtSessionIn(BaseModel):
    session_id: int
