from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from portal.exceptions import InvalidInputError

ROLL_NUMBER_LENGTH = 12


def is_valid_roll_number(value: Any) -> bool:
    # str.isdigit() accepts things like "²", so stick to ASCII
    return (
        isinstance(value, str)
        and len(value) == ROLL_NUMBER_LENGTH
        and value.isascii()
        and value.isdigit()
    )


def format_roll_number(number: int) -> str:
    return str(number).zfill(ROLL_NUMBER_LENGTH)


class RecordStatus(str, Enum):
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class PersonalDetails:
    hall_ticket_no: str = ""
    name: str = ""
    father_name: str = ""
    gender: str = ""
    course: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "hallTicketNo": self.hall_ticket_no,
            "name": self.name,
            "fatherName": self.father_name,
            "gender": self.gender,
            "course": self.course,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersonalDetails":
        return cls(
            hall_ticket_no=_text(data.get("hallTicketNo")),
            name=_text(data.get("name")),
            father_name=_text(data.get("fatherName")),
            gender=_text(data.get("gender")),
            course=_text(data.get("course")),
        )


@dataclass(frozen=True)
class MarkRow:
    sub_code: str
    subject_name: str
    credits: str
    grade_points: str
    grade_security: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "subCode": self.sub_code,
            "subjectName": self.subject_name,
            "credits": self.credits,
            "gradePoints": self.grade_points,
            "gradeSecurity": self.grade_security,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarkRow":
        return cls(
            sub_code=_text(data.get("subCode")),
            subject_name=_text(data.get("subjectName")),
            credits=_text(data.get("credits")),
            grade_points=_text(data.get("gradePoints")),
            grade_security=_text(data.get("gradeSecurity")),
        )


@dataclass(frozen=True)
class SemesterResult:
    semester: str
    sgpa: str
    cgpa: str

    def to_dict(self) -> Dict[str, str]:
        return {"semester": self.semester, "sgpa": self.sgpa, "cgpa": self.cgpa}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SemesterResult":
        return cls(
            semester=_text(data.get("semester")),
            sgpa=_text(data.get("sgpa")),
            cgpa=_text(data.get("cgpa")),
        )


@dataclass(frozen=True)
class StudentRecord:
    """
    One parsed result page.
    A NOT_FOUND record only ever carries a message; a FOUND record may be
    missing any of the three tables independently.
    """
    status: RecordStatus
    message: Optional[str] = None
    personal_details: Optional[PersonalDetails] = None
    marks: Optional[Tuple[MarkRow, ...]] = None
    result: Optional[SemesterResult] = None

    @classmethod
    def not_found(cls, htno: str) -> "StudentRecord":
        return cls(
            status=RecordStatus.NOT_FOUND,
            message=f'Hall Ticket Number "{htno}" is not found.',
        )

    @property
    def found(self) -> bool:
        return self.status == RecordStatus.FOUND

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.message is not None:
            data["message"] = self.message
        if self.personal_details is not None:
            data["personalDetails"] = self.personal_details.to_dict()
        if self.marks is not None:
            data["marks"] = [m.to_dict() for m in self.marks]
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudentRecord":
        if not isinstance(data, dict):
            raise InvalidInputError("Each record must be a JSON object")
        try:
            status = RecordStatus(data.get("status"))
        except ValueError:
            raise InvalidInputError(f"Unknown record status: {data.get('status')!r}")

        if status == RecordStatus.NOT_FOUND:
            return cls(status=status, message=data.get("message"))

        details = data.get("personalDetails")
        marks = data.get("marks")
        result = data.get("result")
        return cls(
            status=status,
            personal_details=PersonalDetails.from_dict(details) if isinstance(details, dict) else None,
            marks=tuple(MarkRow.from_dict(m) for m in marks if isinstance(m, dict)) if isinstance(marks, list) else None,
            result=SemesterResult.from_dict(result) if isinstance(result, dict) else None,
        )


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()
