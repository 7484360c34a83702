"""
REST API implementation for the EvalTrack platform using FastAPI.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.discrepancy import StudentDiscrepancyRow
from ..core.entities import Enrollment, SchoolClass, Student
from ..core.enums import EvaluationKind
from ..core.exceptions import ConflictError, EvalTrackException, NotFoundError, ValidationError
from ..core.rubric import GOALS, GRADES
from ..services import EnrollmentService, SchedulerService

logger = logging.getLogger(__name__)


# Pydantic models for API
class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    cpf: str = Field(..., min_length=1, max_length=20)
    email: str = Field(..., pattern=r'^[^@]+@[^@]+\.[^@]+$')


class StudentUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=r'^[^@]+@[^@]+\.[^@]+$')


class StudentResponse(BaseModel):
    name: str
    cpf: str
    email: str
    created_at: datetime
    updated_at: datetime
    version: int


class StudentSummary(BaseModel):
    name: str
    cpf: str
    email: str


class EvaluationRecord(BaseModel):
    goal: str
    grade: str


class EnrollmentResponse(BaseModel):
    student: StudentSummary
    evaluations: List[EvaluationRecord] = []
    self_evaluations: List[EvaluationRecord] = []
    self_evaluation_requests: List[str] = []


class ClassCreate(BaseModel):
    topic: str = Field(..., min_length=1, max_length=200)
    semester: int = Field(..., ge=1)
    year: int = Field(..., ge=1)


class ClassResponse(BaseModel):
    id: str
    key: str
    topic: str
    semester: int
    year: int
    enrollments: List[EnrollmentResponse] = []
    created_at: datetime
    updated_at: datetime
    version: int


class EnrollmentRequest(BaseModel):
    student_cpf: str = Field(..., min_length=1)


class EvaluationUpdate(BaseModel):
    goal: str = Field(..., min_length=1)
    # Empty or missing clears the evaluation
    grade: Optional[str] = None


class SelfEvaluationRequest(BaseModel):
    goal: str = Field(..., min_length=1)


class ScheduleRequest(BaseModel):
    goal: str = Field(..., min_length=1)
    days: int = Field(0, ge=0)
    hours: int = Field(0, ge=0)
    minutes: int = Field(0, ge=0)


class ScheduleResponse(BaseModel):
    class_id: str
    goal: str
    requested_at: datetime
    target_time: datetime
    message: str


class DiscrepancyResponse(BaseModel):
    cpf: str
    name: str
    goals: Dict[str, bool]
    teacher_evaluations: Dict[str, str]
    self_evaluations: Dict[str, str]
    percentage: int
    highlight: bool
    considered: int
    discrepant: int


class RubricResponse(BaseModel):
    goals: List[str]
    grades: List[str]


class StatisticsResponse(BaseModel):
    success: bool
    message: str
    statistics: Dict[str, Any]


class EvalTrackRestAPI:
    """REST API implementation for the EvalTrack platform."""

    def __init__(self, enrollment_service: EnrollmentService,
                 scheduler_service: Optional[SchedulerService] = None,
                 cors_origins: Optional[List[str]] = None):
        self._enrollment_service = enrollment_service
        self._scheduler_service = scheduler_service or SchedulerService()

        self.app = FastAPI(
            title="EvalTrack API",
            description="Students, classes, enrollments and rubric evaluations",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc"
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins or ["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_exception_handlers()
        self._setup_routes()

    def _setup_exception_handlers(self):
        """Report malformed request bodies as 400 rather than FastAPI's 422."""

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": jsonable_encoder(exc.errors())}
            )

    def _setup_routes(self):
        """Setup API routes."""
        service = self._enrollment_service

        @self.app.get("/health", response_model=Dict[str, str])
        async def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        @self.app.get("/api/rubric", response_model=RubricResponse)
        async def get_rubric():
            """Rubric goals in display order and the grade scale, lowest first."""
            return RubricResponse(goals=list(GOALS), grades=list(GRADES))

        # Student endpoints
        @self.app.get("/api/students", response_model=List[StudentResponse])
        async def list_students():
            try:
                return [self._student_to_response(s) for s in service.list_students()]
            except Exception as e:
                raise self._internal_error(e)

        @self.app.post("/api/students", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
        async def create_student(student_data: StudentCreate):
            try:
                student = service.create_student(student_data.name, student_data.cpf, student_data.email)
                return self._student_to_response(student)
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.get("/api/students/{cpf}", response_model=StudentResponse)
        async def get_student(cpf: str):
            try:
                return self._student_to_response(service.get_student(cpf))
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.put("/api/students/{cpf}", response_model=StudentResponse)
        async def update_student(cpf: str, student_data: StudentUpdate):
            try:
                student = service.update_student(cpf, student_data.name, student_data.email)
                return self._student_to_response(student)
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.delete("/api/students/{cpf}", status_code=status.HTTP_204_NO_CONTENT,
                         response_class=Response)
        async def delete_student(cpf: str):
            try:
                if not service.delete_student(cpf):
                    raise HTTPException(status_code=404, detail="Student not found")
                return Response(status_code=status.HTTP_204_NO_CONTENT)
            except HTTPException:
                raise
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        # Class endpoints
        @self.app.get("/api/classes", response_model=List[ClassResponse])
        async def list_classes():
            try:
                return [self._class_to_response(c) for c in service.list_classes()]
            except Exception as e:
                raise self._internal_error(e)

        @self.app.post("/api/classes", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
        async def create_class(class_data: ClassCreate):
            try:
                school_class = service.create_class(class_data.topic, class_data.semester, class_data.year)
                return self._class_to_response(school_class)
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.get("/api/classes/{class_id}", response_model=ClassResponse)
        async def get_class(class_id: str):
            try:
                return self._class_to_response(service.get_class(class_id))
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.put("/api/classes/{class_id}", response_model=ClassResponse)
        async def update_class(class_id: str, class_data: ClassCreate):
            try:
                school_class = service.update_class(
                    class_id, class_data.topic, class_data.semester, class_data.year
                )
                return self._class_to_response(school_class)
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.delete("/api/classes/{class_id}", status_code=status.HTTP_204_NO_CONTENT,
                         response_class=Response)
        async def delete_class(class_id: str):
            try:
                if not service.delete_class(class_id):
                    raise HTTPException(status_code=404, detail="Class not found")
                return Response(status_code=status.HTTP_204_NO_CONTENT)
            except HTTPException:
                raise
            except Exception as e:
                raise self._internal_error(e)

        # Enrollment endpoints
        @self.app.post("/api/classes/{class_id}/enrollments", response_model=EnrollmentResponse,
                       status_code=status.HTTP_201_CREATED)
        async def enroll_student(class_id: str, enrollment_data: EnrollmentRequest):
            try:
                enrollment = service.enroll(class_id, enrollment_data.student_cpf)
                return self._enrollment_to_response(enrollment)
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.delete("/api/classes/{class_id}/enrollments/{cpf}", status_code=status.HTTP_204_NO_CONTENT,
                         response_class=Response)
        async def unenroll_student(class_id: str, cpf: str):
            try:
                if not service.unenroll(class_id, cpf):
                    raise HTTPException(status_code=404, detail="Enrollment not found")
                return Response(status_code=status.HTTP_204_NO_CONTENT)
            except HTTPException:
                raise
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.put("/api/classes/{class_id}/enrollments/{cpf}/evaluation", response_model=EnrollmentResponse)
        async def update_evaluation(class_id: str, cpf: str, evaluation: EvaluationUpdate):
            """Set, overwrite or clear (empty grade) the teacher's grade for a goal."""
            return self._record(class_id, cpf, evaluation, EvaluationKind.TEACHER)

        @self.app.put("/api/classes/{class_id}/enrollments/{cpf}/self-evaluation",
                      response_model=EnrollmentResponse)
        async def update_self_evaluation(class_id: str, cpf: str, evaluation: EvaluationUpdate):
            """Set, overwrite or clear the student's own grade for a goal."""
            return self._record(class_id, cpf, evaluation, EvaluationKind.SELF)

        # Self-evaluation requests
        @self.app.post("/api/classes/{class_id}/enrollments/{cpf}/self-evaluation-requests",
                       response_model=EnrollmentResponse)
        async def request_self_evaluation(class_id: str, cpf: str, request_data: SelfEvaluationRequest):
            try:
                enrollment = service.request_self_evaluation(class_id, cpf, request_data.goal)
                return self._enrollment_to_response(enrollment)
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.post("/api/classes/{class_id}/self-evaluation-requests",
                       response_model=List[EnrollmentResponse])
        async def request_self_evaluation_all(class_id: str, request_data: SelfEvaluationRequest):
            try:
                enrollments = service.request_self_evaluation_all(class_id, request_data.goal)
                return [self._enrollment_to_response(e) for e in enrollments]
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        @self.app.post("/api/classes/{class_id}/self-evaluation-schedules", response_model=ScheduleResponse)
        async def schedule_self_evaluation(class_id: str, schedule_data: ScheduleRequest):
            """Compute when a delayed request would go out. Nothing is queued."""
            try:
                school_class = service.get_class(class_id)
                scheduled = self._scheduler_service.schedule_self_evaluation_request(
                    school_class,
                    schedule_data.goal,
                    days=schedule_data.days,
                    hours=schedule_data.hours,
                    minutes=schedule_data.minutes,
                )
                return ScheduleResponse(
                    class_id=scheduled.class_id,
                    goal=scheduled.goal,
                    requested_at=scheduled.requested_at,
                    target_time=scheduled.target_time,
                    message=scheduled.message
                )
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        # Discrepancy report
        @self.app.get("/api/classes/{class_id}/discrepancies", response_model=List[DiscrepancyResponse])
        async def get_discrepancies(class_id: str):
            try:
                return [self._discrepancy_to_response(row) for row in service.discrepancy_report(class_id)]
            except EvalTrackException as e:
                raise self._http_error(e)
            except Exception as e:
                raise self._internal_error(e)

        # Statistics
        @self.app.get("/api/statistics", response_model=StatisticsResponse)
        async def get_statistics():
            """Get system statistics."""
            try:
                return StatisticsResponse(
                    success=True,
                    message="Statistics retrieved successfully",
                    statistics=service.get_statistics()
                )
            except Exception as e:
                raise self._internal_error(e)

    def _record(self, class_id: str, cpf: str, evaluation: EvaluationUpdate,
                kind: EvaluationKind) -> EnrollmentResponse:
        try:
            enrollment = self._enrollment_service.record_evaluation(
                class_id, cpf, evaluation.goal, evaluation.grade, kind
            )
            return self._enrollment_to_response(enrollment)
        except EvalTrackException as e:
            raise self._http_error(e)
        except Exception as e:
            raise self._internal_error(e)

    @staticmethod
    def _http_error(error: EvalTrackException) -> HTTPException:
        """Map a domain error onto an HTTP status."""
        if isinstance(error, NotFoundError):
            return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
        if isinstance(error, ValidationError):
            return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
        if isinstance(error, ConflictError):
            return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.message)
        logger.error("Unhandled domain error: %s", error.message)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                             detail=f"Internal error: {error.message}")

    @staticmethod
    def _internal_error(error: Exception) -> HTTPException:
        logger.exception("Unexpected error while handling request")
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                             detail=f"Internal error: {str(error)}")

    def _student_to_response(self, student: Student) -> StudentResponse:
        """Convert Student entity to response model."""
        return StudentResponse(
            name=student.name,
            cpf=student.cpf,
            email=student.email,
            created_at=student.created_at,
            updated_at=student.updated_at,
            version=student.version
        )

    def _enrollment_to_response(self, enrollment: Enrollment) -> EnrollmentResponse:
        data = enrollment.to_dict()
        return EnrollmentResponse(
            student=StudentSummary(**data['student']),
            evaluations=[EvaluationRecord(**record) for record in data['evaluations']],
            self_evaluations=[EvaluationRecord(**record) for record in data['self_evaluations']],
            self_evaluation_requests=data['self_evaluation_requests']
        )

    def _class_to_response(self, school_class: SchoolClass) -> ClassResponse:
        """Convert SchoolClass entity to response model."""
        return ClassResponse(
            id=school_class.id,
            key=school_class.display_key,
            topic=school_class.topic,
            semester=school_class.semester,
            year=school_class.year,
            enrollments=[self._enrollment_to_response(e) for e in school_class.enrollments],
            created_at=school_class.created_at,
            updated_at=school_class.updated_at,
            version=school_class.version
        )

    def _discrepancy_to_response(self, row: StudentDiscrepancyRow) -> DiscrepancyResponse:
        return DiscrepancyResponse(**row.to_dict())
