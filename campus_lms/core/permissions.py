from fastapi import Depends, HTTPException, status

from campus_lms.core.current_user import get_current_user
from campus_lms.models.user import User

GRADER_ROLES = {"instructor", "admin"}


def require_instructor(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in GRADER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor role required",
        )
    return current_user


def is_grader(user: User) -> bool:
    return user.role in GRADER_ROLES
