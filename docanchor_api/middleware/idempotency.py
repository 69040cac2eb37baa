"""Idempotency middleware.

A client whose connection drops while a ledger write is confirming cannot
tell whether the write committed. Retrying with the same idempotency-key
replays the stored response instead of submitting a second transaction.
"""

import base64
import hashlib
import json
import logging
from typing import Optional

import redis
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from docanchor_api.settings import get_settings
from docanchor_api.utils.metrics import idempotent_replays

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get the shared Redis client (connections are opened lazily)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(get_settings().redis_url, decode_responses=False)
    return _redis_client


def cache_key_for(request: Request, idempotency_key: str) -> str:
    api_key = request.headers.get("x-api-key", "")
    client = hashlib.sha256(api_key.encode()).hexdigest()[:16]
    return f"idempotency:{client}:{request.method}:{request.url.path}:{idempotency_key}"


class IdempotencyMiddleware(BaseHTTPMiddleware):
    """Idempotency key handling for POST/PUT requests."""

    async def dispatch(self, request: Request, call_next):
        """Handle idempotency."""
        settings = get_settings()
        if not settings.idempotency_enabled or request.method not in ("POST", "PUT", "PATCH"):
            return await call_next(request)

        idempotency_key = request.headers.get("idempotency-key")
        if not idempotency_key:
            return await call_next(request)

        cache_key = cache_key_for(request, idempotency_key)
        client = get_redis_client()

        try:
            cached = client.get(cache_key)
        except redis.RedisError as e:
            logger.warning(f"Idempotency cache unavailable, processing without it: {e}")
            return await call_next(request)

        if cached:
            data = json.loads(cached)
            idempotent_replays.inc()
            response = Response(
                content=base64.b64decode(data["body"]),
                status_code=data["status_code"],
                media_type=data.get("media_type"),
            )
            response.headers["X-Idempotency-Key"] = idempotency_key
            response.headers["X-Idempotency-Replayed"] = "true"
            return response

        response = await call_next(request)

        # Only 2xx responses are stored; failures may be retried for real
        if not 200 <= response.status_code < 300:
            response.headers["X-Idempotency-Key"] = idempotency_key
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        media_type = response.headers.get("content-type")
        payload = json.dumps(
            {
                "body": base64.b64encode(body).decode("ascii"),
                "status_code": response.status_code,
                "media_type": media_type,
            }
        )
        try:
            client.setex(cache_key, settings.idempotency_ttl_seconds, payload)
        except redis.RedisError as e:
            logger.warning(f"Failed to store idempotent response: {e}")

        headers = {
            k: v for k, v in response.headers.items() if k.lower() != "content-length"
        }
        replay = Response(
            content=body,
            status_code=response.status_code,
            headers=headers,
        )
        replay.headers["X-Idempotency-Key"] = idempotency_key
        return replay
