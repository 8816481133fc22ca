import logging

from fastapi import APIRouter, Depends

from ..deps import get_store
from ..infra.redis_client import get_redis

router = APIRouter()
logger = logging.getLogger("recipebox.ready")


@router.get("/ready")
async def ready(store=Depends(get_store)):
    redis_ok = False
    try:
        r = await get_redis()
        await r.ping()
        redis_ok = True
    except Exception as e:
        logger.warning(f"Redis not ready: {e}")

    storage_ok = False
    try:
        storage_ok = bool(store.healthcheck())
    except Exception as e:
        logger.warning(f"Object store not ready: {e}")

    return {"ok": True, "redis_ok": redis_ok, "storage_ok": storage_ok}
