import json
from datetime import datetime, timezone

from lms.extensions import db

MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
TRUE_FALSE = "TRUE_FALSE"
SHORT_ANSWER = "SHORT_ANSWER"
QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, SHORT_ANSWER)


def parse_options(raw: str | None) -> list[str] | None:
    """Decode the JSON option list stored on a question row."""
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(value, list):
        return None
    return [str(option) for option in value]


def dump_options(options: list[str] | None) -> str | None:
    if options is None:
        return None
    return json.dumps(options, ensure_ascii=False)


class Quiz(db.Model):
    __tablename__ = "quizzes"
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    position = db.Column(db.Integer, nullable=False)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    timer = db.Column(db.Integer, nullable=True)  # minutes
    max_attempts = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    course = db.relationship("Course", back_populates="quizzes")
    questions = db.relationship(
        "QuizQuestion", back_populates="quiz", cascade="all, delete-orphan", order_by="QuizQuestion.position"
    )
    results = db.relationship("QuizResult", back_populates="quiz", cascade="all, delete-orphan")


class QuizQuestion(db.Model):
    __tablename__ = "quiz_questions"
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    text = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(20), nullable=False)
    options = db.Column(db.Text, nullable=True)  # JSON list, multiple choice only
    correct_answer = db.Column(db.Text, nullable=False)
    points = db.Column(db.Integer, nullable=False, default=1)
    image_url = db.Column(db.String(500), nullable=True)
    position = db.Column(db.Integer, nullable=False)

    quiz = db.relationship("Quiz", back_populates="questions")

    __table_args__ = (
        db.CheckConstraint("points > 0", name="ck_quiz_question_points_pos"),
    )


class QuizResult(db.Model):
    __tablename__ = "quiz_results"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    total_points = db.Column(db.Integer, nullable=False)
    percentage = db.Column(db.Float, nullable=False)
    attempt_number = db.Column(db.Integer, nullable=False, default=1)
    submitted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    student = db.relationship("User", back_populates="quiz_results")
    quiz = db.relationship("Quiz", back_populates="results")
    answers = db.relationship("QuizAnswer", back_populates="result", cascade="all, delete-orphan")

    __table_args__ = (
        db.Index("ix_quiz_result_student_quiz", "student_id", "quiz_id"),
    )


class QuizAnswer(db.Model):
    __tablename__ = "quiz_answers"
    id = db.Column(db.Integer, primary_key=True)
    result_id = db.Column(db.Integer, db.ForeignKey("quiz_results.id", ondelete="CASCADE"), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False)
    student_answer = db.Column(db.Text, nullable=False, default="")
    correct_answer = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False)
    points_earned = db.Column(db.Integer, nullable=False, default=0)

    result = db.relationship("QuizResult", back_populates="answers")
    question = db.relationship("QuizQuestion")


class Homework(db.Model):
    __tablename__ = "homeworks"
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    position = db.Column(db.Integer, nullable=False)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    timer = db.Column(db.Integer, nullable=True)
    max_attempts = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    course = db.relationship("Course", back_populates="homeworks")
    questions = db.relationship(
        "HomeworkQuestion",
        back_populates="homework",
        cascade="all, delete-orphan",
        order_by="HomeworkQuestion.position",
    )
    results = db.relationship("HomeworkResult", back_populates="homework", cascade="all, delete-orphan")


class HomeworkQuestion(db.Model):
    __tablename__ = "homework_questions"
    id = db.Column(db.Integer, primary_key=True)
    homework_id = db.Column(db.Integer, db.ForeignKey("homeworks.id", ondelete="CASCADE"), nullable=False)
    text = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(20), nullable=False)
    options = db.Column(db.Text, nullable=True)
    correct_answer = db.Column(db.Text, nullable=False)
    points = db.Column(db.Integer, nullable=False, default=1)
    image_url = db.Column(db.String(500), nullable=True)
    position = db.Column(db.Integer, nullable=False)

    homework = db.relationship("Homework", back_populates="questions")

    __table_args__ = (
        db.CheckConstraint("points > 0", name="ck_homework_question_points_pos"),
    )


class HomeworkResult(db.Model):
    __tablename__ = "homework_results"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    homework_id = db.Column(db.Integer, db.ForeignKey("homeworks.id", ondelete="CASCADE"), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    total_points = db.Column(db.Integer, nullable=False)
    percentage = db.Column(db.Float, nullable=False)
    attempt_number = db.Column(db.Integer, nullable=False, default=1)
    submitted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    student = db.relationship("User", back_populates="homework_results")
    homework = db.relationship("Homework", back_populates="results")
    answers = db.relationship("HomeworkAnswer", back_populates="result", cascade="all, delete-orphan")

    __table_args__ = (
        db.Index("ix_homework_result_student_homework", "student_id", "homework_id"),
    )


class HomeworkAnswer(db.Model):
    __tablename__ = "homework_answers"
    id = db.Column(db.Integer, primary_key=True)
    result_id = db.Column(db.Integer, db.ForeignKey("homework_results.id", ondelete="CASCADE"), nullable=False)
    question_id = db.Column(
        db.Integer, db.ForeignKey("homework_questions.id", ondelete="CASCADE"), nullable=False
    )
    student_answer = db.Column(db.Text, nullable=False, default="")
    correct_answer = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False)
    points_earned = db.Column(db.Integer, nullable=False, default=0)

    result = db.relationship("HomeworkResult", back_populates="answers")
    question = db.relationship("HomeworkQuestion")
