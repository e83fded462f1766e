import csv
from sqlalchemy.orm import Session
from database.db import SessionLocal
from models.academics import Student as StudentModel  # ✅ 모델 import

CSV_PATH = "data/students.csv"  # ✅ 파일 경로 (roll_number, full_name, degree_id, batch_year)


def migrate_students():
    db: Session = SessionLocal()

    with open(CSV_PATH, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        for row in reader:
            # 이미 등록된 학번은 건너뜀
            if db.query(StudentModel).filter(StudentModel.roll_number == row["roll_number"]).first():
                continue
            student = StudentModel(
                roll_number=row["roll_number"],                                      # 학번
                full_name=row["full_name"],                                          # 이름
                degree_id=int(row["degree_id"]) if row.get("degree_id") else None,   # 소속 프로그램
                batch_year=int(row["batch_year"]) if row.get("batch_year") else None  # 입학 연도
            )
            db.add(student)

    db.commit()
    db.close()
    print("✅ 학생 CSV → DB 마이그레이션 완료")


if __name__ == "__main__":
    migrate_students()
