import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from config.settings import settings

logger = logging.getLogger("obe.requests")


class TimingMiddleware(BaseHTTPMiddleware):
    """요청 처리 시간 측정 + 요청 ID 부여. 기준 시간을 넘는 요청은 WARNING으로 남김"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)

        response.headers["X-Latency-Ms"] = str(latency_ms)
        response.headers["X-Request-Id"] = request_id

        level = logging.WARNING if latency_ms >= settings.SLOW_REQUEST_MS else logging.INFO
        logger.log(level, "[%s] %s %s -> %s (%dms)", request_id, request.method, request.url.path,
                   response.status_code, latency_ms)
        return response
