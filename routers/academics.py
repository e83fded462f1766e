from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import (
    AcademicSession as AcademicSessionModel,
    Course as CourseModel,
    CourseEnrollment as EnrollmentModel,
    CourseOffering as CourseOfferingModel,
    Degree as DegreeModel,
    Semester as SemesterModel,
    Student as StudentModel,
)
from models.assessments import AssessmentComponent as ComponentModel
from models.attainment import AttainmentThreshold as ThresholdModel, CourseCLOAttainmentSummary as CloSummaryModel
from models.outcomes import (
    CourseLearningOutcome as CLOModel,
    ProgramEducationalObjective as PEOModel,
    ProgramLearningOutcome as PLOModel,
)
from models.results import CourseResult as CourseResultModel, SemesterResult as SemesterResultModel
from models.users import User as UserModel
from schemas.academics import (
    AcademicSession, AcademicSessionCreate, AcademicSessionUpdate, Course, CourseCreate, CourseOffering,
    CourseOfferingCreate, CourseOfferingUpdate, CourseUpdate, Degree, DegreeCreate, DegreeUpdate,
    Enrollment, EnrollmentCreate, Semester, SemesterCreate, SemesterUpdate, Student, StudentCreate,
)
from utils.exceptions import Conflict, ValidationFailed
from utils.queries import apply_updates, dump, get_or_404

router = APIRouter(tags=["학사 구조"], dependencies=[Depends(authenticate)])


# ✅ 참조 중인 레코드 삭제 방지 (참조 건수를 error 에 담아 400)
def _ensure_unused(db: Session, label: str, **checks):
    in_use = {}
    for key, (model, column, value) in checks.items():
        count = db.query(model).filter(column == value).count()
        if count:
            in_use[key] = count
    if in_use:
        raise ValidationFailed(f"Cannot delete {label} that is in use", error=in_use)


# ==========================================================
# [1단계] 학위 프로그램
# ==========================================================

# ✅ [READ] 전체 프로그램 조회
@router.get("/degrees")
def read_degrees(db: Session = Depends(get_db)):
    records = db.query(DegreeModel).order_by(DegreeModel.code).all()
    return {"success": True, "data": [dump(Degree, r) for r in records], "message": "Degrees retrieved"}


# ✅ [CREATE] 프로그램 추가
@router.post("/degrees", status_code=201)
def create_degree(body: DegreeCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    if db.query(DegreeModel).filter(DegreeModel.code == body.code).first():
        raise Conflict(f"Degree with code {body.code} already exists")
    degree = DegreeModel(**body.model_dump())
    db.add(degree)
    db.commit()
    db.refresh(degree)
    return {"success": True, "data": dump(Degree, degree), "message": "Degree created successfully"}


# ✅ [READ] 프로그램 상세
@router.get("/degrees/{degree_id}")
def read_degree(degree_id: int, db: Session = Depends(get_db)):
    degree = get_or_404(db, DegreeModel, degree_id, "Degree")
    return {"success": True, "data": dump(Degree, degree), "message": "Degree retrieved"}


# ✅ [UPDATE] 프로그램 수정
@router.put("/degrees/{degree_id}")
def update_degree(degree_id: int, body: DegreeUpdate, db: Session = Depends(get_db),
                  _=Depends(authorize("admin"))):
    degree = get_or_404(db, DegreeModel, degree_id, "Degree")
    apply_updates(degree, body)
    db.commit()
    db.refresh(degree)
    return {"success": True, "data": dump(Degree, degree), "message": "Degree updated successfully"}


# ✅ [DELETE] 교과목·학생·PLO/PEO·기준표가 연결된 프로그램은 삭제 불가
@router.delete("/degrees/{degree_id}")
def delete_degree(degree_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    degree = get_or_404(db, DegreeModel, degree_id, "Degree")
    _ensure_unused(
        db, "degree",
        courses=(CourseModel, CourseModel.degree_id, degree_id),
        students=(StudentModel, StudentModel.degree_id, degree_id),
        plos=(PLOModel, PLOModel.degree_id, degree_id),
        peos=(PEOModel, PEOModel.degree_id, degree_id),
        thresholds=(ThresholdModel, ThresholdModel.degree_id, degree_id),
    )
    db.delete(degree)
    db.commit()
    return {"success": True, "data": {"id": degree_id}, "message": "Degree deleted successfully"}


# ==========================================================
# [2단계] 교과목
# ==========================================================

@router.get("/courses")
def read_courses(degree_id: int = None, db: Session = Depends(get_db)):
    query = db.query(CourseModel)
    if degree_id:
        query = query.filter(CourseModel.degree_id == degree_id)
    records = query.order_by(CourseModel.course_code).all()
    return {"success": True, "data": [dump(Course, r) for r in records], "message": "Courses retrieved"}


@router.post("/courses", status_code=201)
def create_course(body: CourseCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    if db.query(CourseModel).filter(CourseModel.course_code == body.course_code).first():
        raise Conflict(f"Course with code {body.course_code} already exists")
    if body.degree_id is not None:
        get_or_404(db, DegreeModel, body.degree_id, "Degree")
    course = CourseModel(**body.model_dump())
    db.add(course)
    db.commit()
    db.refresh(course)
    return {"success": True, "data": dump(Course, course), "message": "Course created successfully"}


@router.get("/courses/{course_id}")
def read_course(course_id: int, db: Session = Depends(get_db)):
    course = get_or_404(db, CourseModel, course_id, "Course")
    return {"success": True, "data": dump(Course, course), "message": "Course retrieved"}


@router.put("/courses/{course_id}")
def update_course(course_id: int, body: CourseUpdate, db: Session = Depends(get_db),
                  _=Depends(authorize("admin"))):
    course = get_or_404(db, CourseModel, course_id, "Course")
    apply_updates(course, body)
    db.commit()
    db.refresh(course)
    return {"success": True, "data": dump(Course, course), "message": "Course updated successfully"}


@router.delete("/courses/{course_id}")
def delete_course(course_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    course = get_or_404(db, CourseModel, course_id, "Course")
    _ensure_unused(
        db, "course",
        offerings=(CourseOfferingModel, CourseOfferingModel.course_id, course_id),
        clos=(CLOModel, CLOModel.course_id, course_id),
    )
    db.delete(course)
    db.commit()
    return {"success": True, "data": {"id": course_id}, "message": "Course deleted successfully"}


# ==========================================================
# [3단계] 학년도 / 학기
# ==========================================================

@router.get("/academic-sessions")
def read_sessions(db: Session = Depends(get_db)):
    records = db.query(AcademicSessionModel).order_by(AcademicSessionModel.id).all()
    return {"success": True, "data": [dump(AcademicSession, r) for r in records], "message": "Academic sessions retrieved"}


@router.post("/academic-sessions", status_code=201)
def create_session(body: AcademicSessionCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    session = AcademicSessionModel(**body.model_dump())
    db.add(session)
    db.commit()
    db.refresh(session)
    return {"success": True, "data": dump(AcademicSession, session), "message": "Academic session created successfully"}


@router.get("/academic-sessions/{session_id}")
def read_session(session_id: int, db: Session = Depends(get_db)):
    session = get_or_404(db, AcademicSessionModel, session_id, "Academic session")
    return {"success": True, "data": dump(AcademicSession, session), "message": "Academic session retrieved"}


@router.put("/academic-sessions/{session_id}")
def update_session(session_id: int, body: AcademicSessionUpdate, db: Session = Depends(get_db),
                   _=Depends(authorize("admin"))):
    session = get_or_404(db, AcademicSessionModel, session_id, "Academic session")
    apply_updates(session, body)
    db.commit()
    db.refresh(session)
    return {"success": True, "data": dump(AcademicSession, session), "message": "Academic session updated successfully"}


# ✅ [DELETE] 학기가 남아 있는 학년도는 삭제 불가
@router.delete("/academic-sessions/{session_id}")
def delete_session(session_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    session = get_or_404(db, AcademicSessionModel, session_id, "Academic session")
    _ensure_unused(db, "academic session",
                   semesters=(SemesterModel, SemesterModel.academic_session_id, session_id))
    db.delete(session)
    db.commit()
    return {"success": True, "data": {"id": session_id}, "message": "Academic session deleted successfully"}


@router.get("/semesters")
def read_semesters(academic_session_id: int = None, db: Session = Depends(get_db)):
    query = db.query(SemesterModel)
    if academic_session_id:
        query = query.filter(SemesterModel.academic_session_id == academic_session_id)
    records = query.order_by(SemesterModel.academic_session_id, SemesterModel.semester_number).all()
    return {"success": True, "data": [dump(Semester, r) for r in records], "message": "Semesters retrieved"}


@router.post("/semesters", status_code=201)
def create_semester(body: SemesterCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    get_or_404(db, AcademicSessionModel, body.academic_session_id, "Academic session")
    semester = SemesterModel(**body.model_dump())
    db.add(semester)
    db.commit()
    db.refresh(semester)
    return {"success": True, "data": dump(Semester, semester), "message": "Semester created successfully"}


@router.get("/semesters/{semester_id}")
def read_semester(semester_id: int, db: Session = Depends(get_db)):
    semester = get_or_404(db, SemesterModel, semester_id, "Semester")
    return {"success": True, "data": dump(Semester, semester), "message": "Semester retrieved"}


@router.put("/semesters/{semester_id}")
def update_semester(semester_id: int, body: SemesterUpdate, db: Session = Depends(get_db),
                    _=Depends(authorize("admin"))):
    semester = get_or_404(db, SemesterModel, semester_id, "Semester")
    if body.academic_session_id is not None:
        get_or_404(db, AcademicSessionModel, body.academic_session_id, "Academic session")
    apply_updates(semester, body)
    db.commit()
    db.refresh(semester)
    return {"success": True, "data": dump(Semester, semester), "message": "Semester updated successfully"}


@router.delete("/semesters/{semester_id}")
def delete_semester(semester_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    semester = get_or_404(db, SemesterModel, semester_id, "Semester")
    _ensure_unused(
        db, "semester",
        offerings=(CourseOfferingModel, CourseOfferingModel.semester_id, semester_id),
        semester_results=(SemesterResultModel, SemesterResultModel.semester_id, semester_id),
    )
    db.delete(semester)
    db.commit()
    return {"success": True, "data": {"id": semester_id}, "message": "Semester deleted successfully"}


# ==========================================================
# [4단계] 학생
# ==========================================================

@router.get("/students")
def read_students(degree_id: int = None, db: Session = Depends(get_db)):
    query = db.query(StudentModel)
    if degree_id:
        query = query.filter(StudentModel.degree_id == degree_id)
    records = query.order_by(StudentModel.roll_number).all()
    return {"success": True, "data": [dump(Student, r) for r in records], "message": "Students retrieved"}


@router.post("/students", status_code=201)
def create_student(body: StudentCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    if db.query(StudentModel).filter(StudentModel.roll_number == body.roll_number).first():
        raise Conflict(f"Student with roll number {body.roll_number} already exists")
    student = StudentModel(**body.model_dump())
    db.add(student)
    db.commit()
    db.refresh(student)
    return {"success": True, "data": dump(Student, student), "message": "Student created successfully"}


@router.get("/students/{student_id}")
def read_student(student_id: int, db: Session = Depends(get_db)):
    student = get_or_404(db, StudentModel, student_id, "Student")
    return {"success": True, "data": dump(Student, student), "message": "Student retrieved"}


# ==========================================================
# [5단계] 개설 강좌 / 수강 신청
# ==========================================================

@router.get("/course-offerings")
def read_offerings(semester_id: int = None, course_id: int = None, db: Session = Depends(get_db)):
    query = db.query(CourseOfferingModel)
    if semester_id:
        query = query.filter(CourseOfferingModel.semester_id == semester_id)
    if course_id:
        query = query.filter(CourseOfferingModel.course_id == course_id)
    records = query.order_by(CourseOfferingModel.id).all()
    return {"success": True, "data": [dump(CourseOffering, r) for r in records], "message": "Course offerings retrieved"}


@router.post("/course-offerings", status_code=201)
def create_offering(body: CourseOfferingCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    get_or_404(db, CourseModel, body.course_id, "Course")
    get_or_404(db, SemesterModel, body.semester_id, "Semester")
    if body.teacher_id is not None:
        get_or_404(db, UserModel, body.teacher_id, "Teacher")
    offering = CourseOfferingModel(**body.model_dump())
    db.add(offering)
    db.commit()
    db.refresh(offering)
    return {"success": True, "data": dump(CourseOffering, offering), "message": "Course offering created successfully"}


@router.get("/course-offerings/{offering_id}")
def read_offering(offering_id: int, db: Session = Depends(get_db)):
    offering = get_or_404(db, CourseOfferingModel, offering_id, "Course offering")
    return {"success": True, "data": dump(CourseOffering, offering), "message": "Course offering retrieved"}


@router.put("/course-offerings/{offering_id}")
def update_offering(offering_id: int, body: CourseOfferingUpdate, db: Session = Depends(get_db),
                    _=Depends(authorize("admin"))):
    offering = get_or_404(db, CourseOfferingModel, offering_id, "Course offering")
    apply_updates(offering, body)
    db.commit()
    db.refresh(offering)
    return {"success": True, "data": dump(CourseOffering, offering), "message": "Course offering updated successfully"}


# ✅ [DELETE] 수강생·평가 항목·성적이 있는 개설 강좌는 삭제 불가
@router.delete("/course-offerings/{offering_id}")
def delete_offering(offering_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    offering = get_or_404(db, CourseOfferingModel, offering_id, "Course offering")
    _ensure_unused(
        db, "course offering",
        enrollments=(EnrollmentModel, EnrollmentModel.course_offering_id, offering_id),
        components=(ComponentModel, ComponentModel.course_offering_id, offering_id),
        course_results=(CourseResultModel, CourseResultModel.course_offering_id, offering_id),
        attainment_summaries=(CloSummaryModel, CloSummaryModel.course_offering_id, offering_id),
    )
    db.delete(offering)
    db.commit()
    return {"success": True, "data": {"id": offering_id}, "message": "Course offering deleted successfully"}


# ✅ [READ] 개설 강좌 수강생 목록
@router.get("/course-offerings/{offering_id}/students")
def read_offering_students(offering_id: int, db: Session = Depends(get_db)):
    get_or_404(db, CourseOfferingModel, offering_id, "Course offering")
    students = (
        db.query(StudentModel)
        .join(EnrollmentModel, EnrollmentModel.student_id == StudentModel.id)
        .filter(EnrollmentModel.course_offering_id == offering_id, EnrollmentModel.status == "enrolled")
        .order_by(StudentModel.roll_number)
        .all()
    )
    return {"success": True, "data": [dump(Student, s) for s in students], "count": len(students),
            "message": "Enrolled students retrieved"}


@router.get("/enrollments")
def read_enrollments(course_offering_id: int = None, student_id: int = None, db: Session = Depends(get_db)):
    query = db.query(EnrollmentModel)
    if course_offering_id:
        query = query.filter(EnrollmentModel.course_offering_id == course_offering_id)
    if student_id:
        query = query.filter(EnrollmentModel.student_id == student_id)
    records = query.order_by(EnrollmentModel.id).all()
    return {"success": True, "data": [dump(Enrollment, r) for r in records], "message": "Enrollments retrieved"}


@router.post("/enrollments", status_code=201)
def create_enrollment(body: EnrollmentCreate, db: Session = Depends(get_db),
                      _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, StudentModel, body.student_id, "Student")
    get_or_404(db, CourseOfferingModel, body.course_offering_id, "Course offering")
    exists = (
        db.query(EnrollmentModel)
        .filter(
            EnrollmentModel.student_id == body.student_id,
            EnrollmentModel.course_offering_id == body.course_offering_id,
        )
        .first()
    )
    if exists is not None:
        raise Conflict("Student is already enrolled in this course offering")
    enrollment = EnrollmentModel(**body.model_dump(), status="enrolled")
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return {"success": True, "data": dump(Enrollment, enrollment), "message": "Student enrolled successfully"}


@router.delete("/enrollments/{enrollment_id}")
def delete_enrollment(enrollment_id: int, db: Session = Depends(get_db),
                      _=Depends(authorize("admin", "teacher"))):
    enrollment = get_or_404(db, EnrollmentModel, enrollment_id, "Enrollment")
    db.delete(enrollment)
    db.commit()
    return {"success": True, "data": {"id": enrollment_id}, "message": "Enrollment deleted successfully"}
