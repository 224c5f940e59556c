import logging

from fastapi import FastAPI

from app.core.config import settings
from app.core.errors import AppError, app_error_handler
from app.core.logging import setup_logging
from app.db.base import Base
from app.db.session import engine

from app.api.routes.auth import router as auth_router
from app.api.routes.makeup import router as makeup_router
from app.api.routes.debt import router as debt_router
from app.api.routes.schedule import router as schedule_router
from app.api.routes.titles import router as titles_router

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Makeup Scheduling API", version="0.1.0")

app.add_exception_handler(AppError, app_error_handler)

app.include_router(auth_router)
app.include_router(makeup_router)
app.include_router(debt_router)
app.include_router(schedule_router)
app.include_router(titles_router)

@app.on_event("startup")
def ensure_schema():
    if not settings.AUTO_CREATE_TABLES:
        return

    # dev/testes; em produção o schema vem do alembic
    Base.metadata.create_all(bind=engine)
    logger.info("[BOOTSTRAP] tables ensured on %s", engine.url.render_as_string(hide_password=True))

@app.get("/health")
def health():
    return {"status": "ok"}
