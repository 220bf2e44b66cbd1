from lms.extensions import db
from lms.models import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, User
from seeds.utils import get_or_create

USERS = [
    # full name, phone, parent phone, role, password
    ("Site Admin", "01000000000", None, ROLE_ADMIN, "Admin123!"),
    ("Demo Teacher", "01000000001", None, ROLE_TEACHER, "Teacher123!"),
    ("Demo Student", "01000000002", "01100000002", ROLE_STUDENT, "Student123!"),
]


def seed_users():
    users = {}
    for full_name, phone, parent_phone, role, password in USERS:
        user, created = get_or_create(
            User,
            phone_number=phone,
            defaults={"full_name": full_name, "parent_phone_number": parent_phone, "role": role},
        )
        if created:
            user.set_password(password)
        if role == ROLE_STUDENT:
            user.grade = "الصف الثاني الثانوي"
            user.semester = "الترم الاول"
            user.subject = "كيمياء,فيزياء"
            user.balance = 500.0
        users[role] = user
    db.session.commit()
    return users
