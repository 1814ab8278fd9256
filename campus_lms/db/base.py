# Import all models here so Base.metadata sees every table (used by init_db and tests)
from campus_lms.db.base_class import Base  # noqa: F401
from campus_lms.models.course import Course  # noqa: F401
from campus_lms.models.enrollment import Enrollment  # noqa: F401
from campus_lms.models.grade_record import GradeRecord  # noqa: F401
from campus_lms.models.grading_config import GradingConfig  # noqa: F401
from campus_lms.models.module import Module, ModuleSection  # noqa: F401
from campus_lms.models.module_content import Assignment, ModuleContent, Quiz  # noqa: F401
from campus_lms.models.submission import Submission  # noqa: F401
from campus_lms.models.user import User  # noqa: F401
