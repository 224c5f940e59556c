from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.errors import NotFound
from app.core.security import verify
from app.core.config import settings
from app.services.policy import MakeupPolicy

bearer_scheme = HTTPBearer(auto_error=False)

ROLE_STUDENT = "student"
ROLE_PROFESSOR = "professor"

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
):
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")

    payload = verify(credentials.credentials, settings.AUTH_SECRET)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid or expired token")

    return payload


def get_current_professor(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != ROLE_PROFESSOR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="professors only")
    return user


def ensure_student_scope(student_id: str, user: dict) -> None:
    # aluno só enxerga os próprios dados; 404 para não revelar outros registros
    if user.get("role") == ROLE_STUDENT and user.get("sub") != student_id:
        raise NotFound("student not found")


def get_policy() -> MakeupPolicy:
    return MakeupPolicy.from_settings(settings)
