from datetime import datetime, timezone

from lms.extensions import db
from lms.security import hash_password, verify_password

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
STAFF_ROLES = (ROLE_ADMIN, ROLE_TEACHER)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(200), nullable=False)
    phone_number = db.Column(db.String(32), unique=True, nullable=False, index=True)
    parent_phone_number = db.Column(db.String(32), unique=True, nullable=True)
    password_hash = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_STUDENT)  # student|teacher|admin
    grade = db.Column(db.String(100), nullable=True)
    semester = db.Column(db.String(50), nullable=True)
    subject = db.Column(db.String(200), nullable=True)  # comma separated
    balance = db.Column(db.Float, nullable=False, default=0.0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    purchases = db.relationship("Purchase", back_populates="user", cascade="all, delete-orphan")
    progress = db.relationship("UserProgress", back_populates="user", cascade="all, delete-orphan")
    chapter_views = db.relationship("ChapterView", back_populates="student", cascade="all, delete-orphan")
    quiz_results = db.relationship("QuizResult", back_populates="student", cascade="all, delete-orphan")
    homework_results = db.relationship("HomeworkResult", back_populates="student", cascade="all, delete-orphan")
    balance_transactions = db.relationship(
        "BalanceTransaction",
        foreign_keys="BalanceTransaction.user_id",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint("balance >= 0", name="ck_user_balance_nonneg"),
        db.Index("ix_user_role", "role"),
    )

    is_authenticated = True

    def set_password(self, password: str):
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return verify_password(password, self.password_hash)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "phoneNumber": self.phone_number,
            "parentPhoneNumber": self.parent_phone_number,
            "role": self.role,
            "grade": self.grade,
            "semester": self.semester,
            "subject": self.subject,
            "balance": self.balance,
            "isActive": self.is_active,
            "createdAt": self.created_at,
        }

    def __repr__(self):
        return f"<User id={self.id} {self.full_name} role={self.role}>"


class BalanceTransaction(db.Model):
    __tablename__ = "balance_transactions"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    delta = db.Column(db.Float, nullable=False)  # negative for purchases
    reason = db.Column(db.String(255), nullable=True)
    source = db.Column(db.String(50), nullable=False, default="admin")  # admin|purchase
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    issued_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user = db.relationship("User", foreign_keys=[user_id], back_populates="balance_transactions")
    course = db.relationship("Course")
    issued_by = db.relationship("User", foreign_keys=[issued_by_id])

    __table_args__ = (
        db.CheckConstraint("delta <> 0", name="ck_balance_delta_nonzero"),
        db.Index("ix_balance_user_id", "user_id"),
        db.Index("ix_balance_created_at", "created_at"),
    )
