from lms.extensions import db
from seeds.demo_content import seed_courses
from seeds.setup_data import seed_users


def main():
    try:
        db.drop_all()
        db.create_all()

        users = seed_users()
        seed_courses(users)

        print("Database seeded. Admin login: 01000000000 / Admin123!")
    finally:
        db.remove_session()


if __name__ == '__main__':
    main()
