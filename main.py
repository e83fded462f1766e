from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from database.db import create_tables

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
# HTTP 라이브러리 디버그 로그 비활성화
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger("obe")

# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.audit import AuditMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ 라우터 임포트
from routers import (
    auth, academics,
    clos, plos, peos,
    assessments, questions, marks,
    clo_attainment, plo_attainment,
    grades, course_results, semester_results,
    audit_logs, reports, meta,
    thresholds, users,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 테이블이 없으면 생성 (운영 DB는 scripts/init_db.py 로 초기화)
    create_tables()
    logger.info("%s v%s started (env=%s)", settings.APP_TITLE, settings.APP_VERSION, settings.ENV)
    yield


app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# ✅ CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ 변경 요청 자동 감사 로그 (/api 하위 POST/PUT/PATCH/DELETE)
app.add_middleware(AuditMiddleware)

# ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
app.add_middleware(TimingMiddleware)

# ✅ 전역 에러 핸들러 등록 (일관된 JSON 에러 포맷)
add_error_handlers(app)

# ✅ /api 프리픽스 라우터 등록
app.include_router(auth.router,             prefix="/api")
app.include_router(academics.router,        prefix="/api")
app.include_router(clos.router,             prefix="/api")
app.include_router(plos.router,             prefix="/api")
app.include_router(peos.router,             prefix="/api")
app.include_router(assessments.router,      prefix="/api")
app.include_router(questions.router,        prefix="/api")
app.include_router(marks.router,            prefix="/api")
app.include_router(clo_attainment.router,   prefix="/api")
app.include_router(plo_attainment.router,   prefix="/api")
app.include_router(grades.router,           prefix="/api")
app.include_router(course_results.router,   prefix="/api")
app.include_router(semester_results.router, prefix="/api")
app.include_router(audit_logs.router,       prefix="/api")
app.include_router(reports.router,          prefix="/api")   # ✅ PDF 생성 라우터
app.include_router(meta.router,             prefix="/api")
app.include_router(thresholds.router,       prefix="/api")
app.include_router(users.router,            prefix="/api")


# ✅ 헬스체크 엔드포인트
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


# ✅ 루트 엔드포인트
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - Outcome-Based Education management"}
