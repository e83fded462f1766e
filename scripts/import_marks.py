"""
평가 항목 점수 CSV 일괄 입력

CSV 컬럼: roll_number, assessment_component_id, marks_obtained[, is_absent, remarks]
검증은 services/marks_service 의 upsert 규칙을 그대로 사용 (음수/만점 초과 행은 건너뜀)
"""

import csv
import sys

from sqlalchemy.orm import Session

from database.db import SessionLocal
from models.academics import Student as StudentModel
from services import marks_service
from utils.exceptions import AppError

CSV_PATH = "data/marks.csv"  # ✅ 기본 파일 경로


def _flag(value) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "y")


def migrate_marks(csv_path: str = CSV_PATH):
    db: Session = SessionLocal()
    saved, skipped = 0, 0

    with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        for line_no, row in enumerate(reader, start=2):
            student = db.query(StudentModel).filter(StudentModel.roll_number == row["roll_number"]).first()
            if student is None:
                print(f"⚠️ {line_no}행: 학번 {row['roll_number']} 없음")
                skipped += 1
                continue
            try:
                marks_service.upsert_assessment_mark(db, {
                    "student_id": student.id,
                    "assessment_component_id": int(row["assessment_component_id"]),
                    "marks_obtained": float(row["marks_obtained"]) if row.get("marks_obtained") else None,
                    "is_absent": _flag(row.get("is_absent")),
                    "remarks": row.get("remarks") or None,
                }, evaluated_by=None)
                saved += 1
            except AppError as exc:
                print(f"⚠️ {line_no}행: {exc.message}")
                skipped += 1

    db.commit()
    db.close()
    print(f"✅ 점수 CSV → DB 마이그레이션 완료 (저장 {saved}건, 건너뜀 {skipped}건)")


if __name__ == "__main__":
    migrate_marks(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
