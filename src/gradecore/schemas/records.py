"""Record shapes exchanged with the configuration and academic-records stores.

The stores speak camelCase JSON; these models translate it to and from the
engine's value types.
"""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from gradecore.config.settings import settings
from gradecore.core.distribution import ComponentScoreSet, MarkDistribution
from gradecore.core.errors import ConfigurationError
from gradecore.core.grades import GradeResult
from gradecore.services.batch import BatchReport, StudentFailure

MALFORMED_RECORD = "malformed distribution record"


def _score_field(name: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(name, f"{name}MarksObtained"))


class MarkDistributionRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = ""
    class_id: str = Field(alias="classId")
    subject_id: Optional[str] = Field(default=None, alias="subjectId")
    academic_year: str = Field(default_factory=lambda: settings.default_academic_year, alias="academicYear")
    semester: Optional[str] = None

    theory_marks: int = Field(default=0, alias="theoryMarks")
    practical_marks: int = Field(default=0, alias="practicalMarks")
    internal_marks: int = Field(default=0, alias="internalMarks")
    project_marks: int = Field(default=0, alias="projectMarks")
    assignment_marks: int = Field(default=0, alias="assignmentMarks")
    attendance_marks: int = Field(default=0, alias="attendanceMarks")
    total_marks: Optional[int] = Field(default=None, alias="totalMarks")

    theory_weightage: float = Field(default=0.0, alias="theoryWeightage")
    practical_weightage: float = Field(default=0.0, alias="practicalWeightage")
    internal_weightage: float = Field(default=0.0, alias="internalWeightage")
    project_weightage: float = Field(default=0.0, alias="projectWeightage")
    assignment_weightage: float = Field(default=0.0, alias="assignmentWeightage")
    attendance_weightage: float = Field(default=0.0, alias="attendanceWeightage")

    grade_system: str = Field(default="percentage", alias="gradeSystem")
    passing_percentage: float = Field(default=35.0, alias="passingPercentage")
    allow_grace_marks: bool = Field(default=False, alias="allowGraceMarks")
    grace_marks_limit: float = Field(default=0, alias="graceMarksLimit")
    rounding_method: str = Field(default="round", alias="roundingMethod")

    is_active: bool = Field(default=True, alias="isActive")
    created_by: Optional[str] = Field(default=None, alias="createdBy")

    @field_validator("id", "class_id", "subject_id", "semester", "created_by", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    def to_distribution(self) -> MarkDistribution:
        values = self.model_dump()
        values["description"] = values["description"] or ""
        return MarkDistribution(**values)


class ComponentScoreRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    theory: Optional[float] = _score_field("theory")
    practical: Optional[float] = _score_field("practical")
    internal: Optional[float] = _score_field("internal")
    project: Optional[float] = _score_field("project")
    assignment: Optional[float] = _score_field("assignment")
    attendance: Optional[float] = _score_field("attendance")

    def to_score_set(self) -> ComponentScoreSet:
        return ComponentScoreSet(**self.model_dump())


def parse_distribution(record: Mapping[str, Any]) -> MarkDistribution:
    try:
        return MarkDistributionRecord.model_validate(record).to_distribution()
    except ValidationError as exc:
        location = ".".join(str(part) for part in exc.errors()[0]["loc"])
        raise ConfigurationError(MALFORMED_RECORD, location or None) from exc


def parse_score_set(record: Mapping[str, Any]) -> ComponentScoreSet:
    try:
        return ComponentScoreRecord.model_validate(record).to_score_set()
    except ValidationError as exc:
        raise ValueError(f"Malformed score record: {exc}") from exc


class GradeResultRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(alias="studentId")
    raw_weighted_percentage: float = Field(alias="rawWeightedPercentage")
    rounded_percentage: int = Field(alias="roundedPercentage")
    grace_applied: bool = Field(alias="graceApplied")
    grace_amount: float = Field(alias="graceAmount")
    final_percentage: float = Field(alias="finalPercentage")
    grade: str
    grade_point: int = Field(alias="gradePoint")
    passed: bool
    status: str
    missing_components: List[str] = Field(alias="missingComponents")
    total_marks_obtained: float = Field(alias="totalMarksObtained")
    total_marks_possible: int = Field(alias="totalMarksPossible")

    @classmethod
    def from_result(cls, student_id: str, result: GradeResult) -> "GradeResultRecord":
        return cls(
            student_id=student_id,
            raw_weighted_percentage=result.raw_weighted_percentage,
            rounded_percentage=result.rounded_percentage,
            grace_applied=result.grace_applied,
            grace_amount=result.grace_amount,
            final_percentage=result.final_percentage,
            grade=result.letter_grade,
            grade_point=result.grade_point,
            passed=result.passed,
            status=result.status.value,
            missing_components=list(result.missing_components),
            total_marks_obtained=result.total_obtained,
            total_marks_possible=result.total_possible,
        )


class StudentFailureRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(alias="studentId")
    component: str
    score: str
    maximum: int
    message: str

    @classmethod
    def from_failure(cls, failure: StudentFailure) -> "StudentFailureRecord":
        return cls(
            student_id=failure.student_id,
            component=failure.component,
            score=str(failure.score),
            maximum=failure.maximum,
            message=failure.message,
        )


class BatchReportRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_id: str = Field(alias="classId")
    subject_id: Optional[str] = Field(alias="subjectId")
    academic_year: str = Field(alias="academicYear")
    semester: Optional[str]
    total_processed: int = Field(alias="totalProcessed")
    incomplete_count: int = Field(alias="incompleteCount")
    integrity_failure_count: int = Field(alias="integrityFailureCount")
    passed_count: int = Field(alias="passedCount")
    failed_count: int = Field(alias="failedCount")
    cancelled: bool
    skipped: List[str]
    results: List[GradeResultRecord]
    failures: List[StudentFailureRecord]

    @classmethod
    def from_report(cls, report: BatchReport) -> "BatchReportRecord":
        scope = report.scope
        return cls(
            class_id=scope.class_id,
            subject_id=scope.subject_id,
            academic_year=scope.academic_year,
            semester=scope.semester,
            total_processed=report.total_processed,
            incomplete_count=report.incomplete_count,
            integrity_failure_count=report.integrity_failure_count,
            passed_count=report.passed_count,
            failed_count=report.failed_count,
            cancelled=report.cancelled,
            skipped=list(report.skipped),
            results=[GradeResultRecord.from_result(sid, result) for sid, result in report.results.items()],
            failures=[StudentFailureRecord.from_failure(failure) for failure in report.failures.values()],
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
