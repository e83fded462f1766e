from sqlalchemy import Column, Integer, String, Text, DateTime, func
from database.db import Base

# 허용되는 감사 로그 액션
AUDIT_ACTIONS = ("CREATE", "UPDATE", "DELETE", "LOGIN", "LOGOUT", "VIEW", "EXPORT", "IMPORT")


class AuditLog(Base):
    __tablename__ = "audit_logs"  # 변경 이력 (감사 추적)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True)            # 수행자 (시스템 작업이면 NULL)
    action = Column(String(20), nullable=False)      # AUDIT_ACTIONS 중 하나
    table_name = Column(String(64), nullable=False, index=True)
    record_id = Column(Integer)                      # 대상 레코드 ID
    old_values = Column(Text)                        # JSON 문자열 (UPDATE/DELETE)
    new_values = Column(Text)                        # JSON 문자열 (CREATE/UPDATE)
    ip_address = Column(String(45))
    user_agent = Column(String(255))
    created_at = Column(DateTime, server_default=func.now(), index=True)
