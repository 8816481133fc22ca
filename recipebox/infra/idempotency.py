import hashlib
import json
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from .redis_client import get_redis

DONE_TTL_SEC = 60 * 60 * 24
PROCESSING_TTL_SEC = 60


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _hash_request(method: str, path: str, body_bytes: bytes) -> str:
    h = hashlib.sha256()
    h.update(method.encode("utf-8"))
    h.update(b"|")
    h.update(path.encode("utf-8"))
    h.update(b"|")
    h.update(body_bytes or b"")
    return h.hexdigest()


def _idemp_redis_key(user_id: str, route_key: str, idem_key: str) -> str:
    return f"recipebox:idemp:{user_id}:{route_key}:{idem_key}"


async def idempotency_precheck(
    request: Request, *, user_id: str, route_key: str
) -> Union[None, tuple[str, str], JSONResponse]:
    """Check the Idempotency-Key header before running a mutation.

    Returns None when the header is absent (no idempotency), a
    (redis_key, request_hash) tuple when the caller should proceed, or a
    JSONResponse replaying a completed request.
    """
    idem_key = request.headers.get("Idempotency-Key")
    if not idem_key:
        return None

    body_bytes = await request.body()
    req_hash = _hash_request(request.method, request.url.path, body_bytes)

    rkey = _idemp_redis_key(user_id, route_key, idem_key)
    r = await get_redis()

    raw = await r.get(rkey)
    if raw:
        data = json.loads(raw)
        if data.get("request_hash") and data["request_hash"] != req_hash:
            raise HTTPException(status_code=409, detail="Idempotency-Key reused with different request payload")
        if data.get("state") == "done":
            return JSONResponse(content=data.get("body"), status_code=int(data.get("status", 200)))
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    processing_payload = {
        "state": "processing",
        "status": None,
        "body": None,
        "created_at": _iso_now(),
        "completed_at": None,
        "request_hash": req_hash,
    }
    ok = await r.set(rkey, json.dumps(processing_payload), ex=PROCESSING_TTL_SEC, nx=True)
    if not ok:
        # someone else won the race
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    return (rkey, req_hash)


async def idempotency_store_result(redis_key: str, req_hash: str, *, status: int, body: dict):
    r = await get_redis()
    payload = {
        "state": "done",
        "status": int(status),
        "body": body,
        "created_at": None,
        "completed_at": _iso_now(),
        "request_hash": req_hash,
    }
    await r.set(redis_key, json.dumps(payload), ex=DONE_TTL_SEC)


async def idempotency_clear_key(redis_key: Optional[str]):
    """Clear key on error"""
    if not redis_key:
        return
    r = await get_redis()
    await r.delete(redis_key)
