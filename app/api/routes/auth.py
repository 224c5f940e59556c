import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.people import Professor, Student
from app.schemas.auth import LoginIn, LoginOut
from app.core.security import sign, verify_password
from app.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def _secret() -> str:
    return settings.AUTH_SECRET

@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    model = Student if payload.role == "student" else Professor
    user = db.get(model, payload.matricule)

    # mesma resposta para matrícula inexistente e senha errada
    if not user or not verify_password(user.password_hash, payload.password):
        logger.info("failed %s login for %s", payload.role, payload.matricule)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid credentials")

    token = sign(
        {"sub": user.matricule, "role": payload.role},
        secret=_secret(),
        ttl_seconds=settings.TOKEN_TTL_SECONDS,
    )
    return LoginOut(access_token=token, role=payload.role, matricule=user.matricule)
