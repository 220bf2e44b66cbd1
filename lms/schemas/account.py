from typing import Optional

from lms.schemas.assessment import CamelModel


class RegisterIn(CamelModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    parent_phone_number: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None
    subject: Optional[str] = None
    grade: Optional[str] = None
    semester: Optional[str] = None
    recaptcha_token: Optional[str] = None


class ProfileUpdate(CamelModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    parent_phone_number: Optional[str] = None
    grade: Optional[str] = None
    subject: Optional[str] = None
    semester: Optional[str] = None


class AdminUserUpdate(ProfileUpdate):
    role: Optional[str] = None


class PasswordChange(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class PasswordReset(CamelModel):
    new_password: str


class BalanceIn(CamelModel):
    amount: float
    reason: Optional[str] = None


class GrantCourseIn(CamelModel):
    course_id: int


class CodesIn(CamelModel):
    course_id: int
    count: int = 1


class RedeemIn(CamelModel):
    code: str
