# Re-export models so external code can keep using: from lms.models import User, Course, ...
from .user import User, BalanceTransaction, ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT, STAFF_ROLES
from .course import Course, Purchase, PurchaseCode
from .chapter import Chapter, UserProgress, ChapterView
from .assessment import (
    Quiz,
    QuizQuestion,
    QuizResult,
    QuizAnswer,
    Homework,
    HomeworkQuestion,
    HomeworkResult,
    HomeworkAnswer,
    MULTIPLE_CHOICE,
    TRUE_FALSE,
    SHORT_ANSWER,
    QUESTION_TYPES,
    parse_options,
    dump_options,
)

__all__ = [
    # accounts
    "User", "BalanceTransaction", "ROLE_ADMIN", "ROLE_TEACHER", "ROLE_STUDENT", "STAFF_ROLES",
    # courses & entitlement
    "Course", "Purchase", "PurchaseCode",
    # chapters & progress
    "Chapter", "UserProgress", "ChapterView",
    # assessments
    "Quiz", "QuizQuestion", "QuizResult", "QuizAnswer",
    "Homework", "HomeworkQuestion", "HomeworkResult", "HomeworkAnswer",
    "MULTIPLE_CHOICE", "TRUE_FALSE", "SHORT_ANSWER", "QUESTION_TYPES",
    "parse_options", "dump_options",
]
