"""Liveness and readiness probes."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from agentchat.cache import get_cache
from agentchat.database import check_db_connection

router = APIRouter(prefix="/health")


@router.get("")
async def health():
    return {"status": "healthy"}


@router.get("/live")
async def liveness():
    return {"status": "alive"}


@router.get("/ready")
async def readiness():
    """Ready when the database answers. Redis is reported but optional."""
    database_ok = await check_db_connection()
    checks = {"database": database_ok, "redis": await get_cache().ping()}
    return JSONResponse(
        {"status": "ready" if database_ok else "not_ready", "checks": checks},
        status_code=200 if database_ok else 503,
    )
