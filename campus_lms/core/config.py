import os
from datetime import timedelta
from decimal import Decimal

# DEV ONLY default secret. Set SECRET_KEY in the environment for real deployments.
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")))

DATABASE_URL = os.getenv("DATABASE_URL", "")  # empty -> sqlite file next to the package
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Late policy
GRACE_PERIOD_MINUTES = int(os.getenv("GRACE_PERIOD_MINUTES", "0"))  # submissions within grace are on time
LATE_PENALTY_MAX = Decimal(os.getenv("LATE_PENALTY_MAX", "1"))  # cap on total deduction, 1 = uncapped

# Attempts
DEFAULT_MAX_ATTEMPTS = int(os.getenv("DEFAULT_MAX_ATTEMPTS", "1"))  # 0 means unlimited
RETURN_FEEDBACK_MAX_LENGTH = 1000

# Letter grades, checked top-down against the final percentage
LETTER_GRADE_THRESHOLDS: list[tuple[Decimal, str]] = [
    (Decimal("90"), "A"),
    (Decimal("80"), "B"),
    (Decimal("70"), "C"),
    (Decimal("60"), "D"),
    (Decimal("0"), "F"),
]
