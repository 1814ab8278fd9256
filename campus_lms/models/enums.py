import enum


class ContentType(str, enum.Enum):
    ASSIGNMENT = "ASSIGNMENT"
    QUIZ = "QUIZ"
    LESSON = "LESSON"
    DISCUSSION = "DISCUSSION"
    FILE = "FILE"
    URL = "URL"
    VIDEO = "VIDEO"


GRADABLE_CONTENT_TYPES = {ContentType.ASSIGNMENT, ContentType.QUIZ}


class SubmissionState(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    LATE = "late"
    UNDER_REVIEW = "under_review"  # graded pending release
    RETURNED_FOR_REVISION = "returned_for_revision"
    GRADED = "graded"
    LOCKED = "locked"


class AssignmentMode(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    GROUP = "GROUP"


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
