import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from music_library.core.config import settings
from music_library.db.session import get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/healthz")
def healthz():
    engine = get_engine()
    body = {"status": "ok", "service": settings.service_name, "database": "unbound"}
    if engine is None:
        return body

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check database ping failed: %s", e)
        body.update(status="degraded", database="error")
        return JSONResponse(body, status_code=503)

    body["database"] = "ok"
    return body
