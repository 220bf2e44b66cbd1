from datetime import datetime, timezone

from lms.extensions import db


class Course(db.Model):
    __tablename__ = "courses"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    price = db.Column(db.Float, nullable=False, default=0.0)
    grade = db.Column(db.String(100), nullable=True)
    subject = db.Column(db.String(100), nullable=True)
    semester = db.Column(db.String(50), nullable=True)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    owner = db.relationship("User")
    chapters = db.relationship(
        "Chapter", back_populates="course", cascade="all, delete-orphan", order_by="Chapter.position"
    )
    quizzes = db.relationship(
        "Quiz", back_populates="course", cascade="all, delete-orphan", order_by="Quiz.position"
    )
    homeworks = db.relationship(
        "Homework", back_populates="course", cascade="all, delete-orphan", order_by="Homework.position"
    )
    purchases = db.relationship("Purchase", back_populates="course", cascade="all, delete-orphan")
    codes = db.relationship("PurchaseCode", back_populates="course", cascade="all, delete-orphan")

    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_course_price_nonneg"),
        db.Index("ix_course_created_at", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "imageUrl": self.image_url,
            "price": self.price,
            "grade": self.grade,
            "subject": self.subject,
            "semester": self.semester,
            "isPublished": self.is_published,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class Purchase(db.Model):
    __tablename__ = "purchases"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="ACTIVE")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user = db.relationship("User", back_populates="purchases")
    course = db.relationship("Course", back_populates="purchases")

    __table_args__ = (
        db.UniqueConstraint("user_id", "course_id", name="uq_purchase_user_course"),
        db.Index("ix_purchase_course_id", "course_id"),
    )


class PurchaseCode(db.Model):
    __tablename__ = "purchase_codes"
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_used = db.Column(db.Boolean, nullable=False, default=False)
    used_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    used_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    course = db.relationship("Course", back_populates="codes")
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    used_by = db.relationship("User", foreign_keys=[used_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "courseId": self.course_id,
            "courseTitle": self.course.title if self.course else None,
            "createdBy": self.created_by_id,
            "isUsed": self.is_used,
            "usedBy": self.used_by_id,
            "usedAt": self.used_at,
            "createdAt": self.created_at,
        }
