from sqlalchemy import create_engine               # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base        # 모델의 Base 클래스
from sqlalchemy.orm import sessionmaker            # 세션 팩토리 함수
from sqlalchemy.pool import StaticPool

from config.settings import settings               # ✅ 환경변수 설정 파일 불러오기


def _engine_kwargs(url: str) -> dict:
    # sqlite(테스트)는 스레드 체크 해제 + 단일 커넥션 공유, MySQL은 끊긴 커넥션 재확인
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True, "pool_recycle": 3600}


# ✅ 환경변수에서 DB 연결 URL을 불러와 엔진 생성
engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

# ✅ 세션 팩토리: DB 연결에 사용할 세션 생성기 정의
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


# ✅ 요청 단위 DB 세션 (라우터에서 Depends(get_db)로 사용)
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ✅ 모든 모델을 등록한 뒤 테이블 생성
def create_tables():
    from models import (  # noqa: F401
        users, academics, outcomes, assessments, marks, results, attainment, audit_logs,
    )
    Base.metadata.create_all(bind=engine)
