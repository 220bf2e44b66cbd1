from datetime import datetime, timezone

from lms.extensions import db


class Chapter(db.Model):
    __tablename__ = "chapters"
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    video_url = db.Column(db.String(500), nullable=True)
    position = db.Column(db.Integer, nullable=False)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    is_free = db.Column(db.Boolean, nullable=False, default=False)
    max_views = db.Column(db.Integer, nullable=True)  # null or 0 means unlimited
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    course = db.relationship("Course", back_populates="chapters")
    user_progress = db.relationship("UserProgress", back_populates="chapter", cascade="all, delete-orphan")
    views = db.relationship("ChapterView", back_populates="chapter", cascade="all, delete-orphan")

    __table_args__ = (
        db.Index("ix_chapter_course_position", "course_id", "position"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "courseId": self.course_id,
            "title": self.title,
            "description": self.description,
            "videoUrl": self.video_url,
            "position": self.position,
            "isPublished": self.is_published,
            "isFree": self.is_free,
            "maxViews": self.max_views,
        }


class UserProgress(db.Model):
    __tablename__ = "user_progress"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    chapter_id = db.Column(db.Integer, db.ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User", back_populates="progress")
    chapter = db.relationship("Chapter", back_populates="user_progress")

    __table_args__ = (
        db.UniqueConstraint("user_id", "chapter_id", name="uq_progress_user_chapter"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "chapterId": self.chapter_id,
            "isCompleted": self.is_completed,
            "updatedAt": self.updated_at,
        }


class ChapterView(db.Model):
    """One row per counted view; only ever appended."""

    __tablename__ = "chapter_views"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    chapter_id = db.Column(db.Integer, db.ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False)
    viewed_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    student = db.relationship("User", back_populates="chapter_views")
    chapter = db.relationship("Chapter", back_populates="views")

    __table_args__ = (
        db.Index("ix_view_student_chapter", "student_id", "chapter_id"),
    )
