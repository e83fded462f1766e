import json
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from config.settings import settings
from dependencies.security import user_id_from_header
from services.audit_service import get_ip_address, write_log

logger = logging.getLogger(__name__)

METHOD_ACTIONS = {"POST": "CREATE", "PUT": "UPDATE", "PATCH": "UPDATE", "DELETE": "DELETE"}
SKIP_PATHS = ("/api/auth/login", "/api/auth/logout", "/api/meta/health")


def _table_from_path(path: str) -> str:
    # /api/semester-results/calculate → semester_results
    segments = [s for s in path.split("/") if s]
    return segments[1].replace("-", "_") if len(segments) > 1 else "unknown"


def _record_id(payload: dict, request: Request):
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("id"), int):
        return data["id"]
    for value in (request.scope.get("path_params") or {}).values():
        if isinstance(value, int):
            return value
    for segment in request.url.path.split("/"):
        if segment.isdigit():
            return int(segment)
    return None


class AuditMiddleware(BaseHTTPMiddleware):
    """변경 요청(POST/PUT/PATCH/DELETE)이 성공하면 audit_logs에 자동 기록"""

    async def dispatch(self, request: Request, call_next):
        action = METHOD_ACTIONS.get(request.method)
        path = request.url.path
        if (
            not settings.AUDIT_ENABLED
            or action is None
            or not path.startswith("/api/")
            or path in SKIP_PATHS
        ):
            return await call_next(request)

        raw_body = await request.body()
        response = await call_next(request)

        if not (200 <= response.status_code < 300) or "application/json" not in response.headers.get("content-type", ""):
            return response

        # 응답 본문을 읽은 뒤 동일한 내용으로 다시 만들어 반환
        body = b"".join([chunk async for chunk in response.body_iterator])
        new_response = Response(
            content=body,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )

        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            return new_response
        if not isinstance(payload, dict) or payload.get("success") is not True:
            return new_response

        try:
            request_values = json.loads(raw_body) if raw_body else None
        except ValueError:
            request_values = None

        write_log(
            action=action,
            table_name=_table_from_path(path),
            user_id=user_id_from_header(request.headers.get("authorization")),
            record_id=_record_id(payload, request),
            old_values=request_values if action == "DELETE" else None,
            new_values=request_values if action in ("CREATE", "UPDATE") else None,
            ip_address=get_ip_address(request),
            user_agent=request.headers.get("user-agent"),
        )
        return new_response
