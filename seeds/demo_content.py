from lms.extensions import db
from lms.models import (
    MULTIPLE_CHOICE,
    SHORT_ANSWER,
    TRUE_FALSE,
    Chapter,
    Course,
    Homework,
    HomeworkQuestion,
    Purchase,
    PurchaseCode,
    Quiz,
    QuizQuestion,
    dump_options,
)
from seeds.utils import get_or_create


def seed_courses(users):
    teacher = users["teacher"]
    student = users["student"]

    course, _ = get_or_create(
        Course,
        title="Chemistry: Atomic Structure",
        defaults={
            "user_id": teacher.id,
            "description": "Atoms, electrons and the periodic table.",
            "image_url": "https://example.com/images/chemistry.png",
            "price": 150.0,
            "grade": "الصف الثاني الثانوي",
            "subject": "كيمياء",
            "semester": "الترم الاول",
            "is_published": True,
        },
    )

    get_or_create(
        Chapter,
        course_id=course.id,
        position=1,
        defaults={
            "title": "Introduction",
            "video_url": "https://example.com/videos/intro.mp4",
            "is_published": True,
            "is_free": True,
        },
    )
    get_or_create(
        Quiz,
        course_id=course.id,
        position=2,
        defaults={"title": "Warm-up quiz", "is_published": True, "max_attempts": 2, "timer": 10},
    )
    get_or_create(
        Chapter,
        course_id=course.id,
        position=3,
        defaults={
            "title": "Electron configuration",
            "video_url": "https://example.com/videos/electrons.mp4",
            "is_published": True,
            "max_views": 3,
        },
    )
    get_or_create(
        Homework,
        course_id=course.id,
        position=4,
        defaults={"title": "Electrons homework", "is_published": True},
    )
    db.session.flush()

    quiz = course.quizzes[0]
    if not quiz.questions:
        quiz.questions = [
            QuizQuestion(
                text="Which particle has a negative charge?",
                type=MULTIPLE_CHOICE,
                options=dump_options(["Proton", "Electron", "Neutron"]),
                correct_answer="Electron",
                points=2,
                position=1,
            ),
            QuizQuestion(text="Neutrons carry no charge.", type=TRUE_FALSE, correct_answer="true", points=1, position=2),
        ]
    homework = course.homeworks[0]
    if not homework.questions:
        homework.questions = [
            HomeworkQuestion(
                text="Symbol of the element with atomic number 1?",
                type=SHORT_ANSWER,
                correct_answer="H",
                points=3,
                position=1,
            ),
        ]

    get_or_create(Purchase, user_id=student.id, course_id=course.id)
    get_or_create(PurchaseCode, code="DEMO-CODE-0001", defaults={"course_id": course.id, "created_by_id": teacher.id})
    db.session.commit()
    return course
