"""Schema bootstrap and first-run demo data."""
import logging
import secrets
import string
from datetime import date

from flask import current_app

from school_admin import db
from school_admin.models import Announcement, SchoolClass, Student, Subject, User
from school_admin.security import ADMIN, STUDENT, TEACHER, hash_password

logger = logging.getLogger(__name__)

DEMO_TEACHERS = [
    ('smith', 'John Smith', 'smith@school.edu'),
    ('johnson', 'Mary Johnson', 'johnson@school.edu'),
]

DEMO_STUDENTS = [
    # username, name, email, roll number, class index, gender
    ('alice', 'Alice Brown', 'alice@school.edu', 'S001', 0, 'Female'),
    ('bob', 'Bob Davis', 'bob@school.edu', 'S002', 0, 'Male'),
    ('carol', 'Carol Evans', 'carol@school.edu', 'S003', 1, 'Female'),
    ('dave', 'Dave Foster', 'dave@school.edu', 'S004', 1, 'Male'),
]


def init_db(seed_demo=True):
    """Create missing tables and, when no admin exists yet, the first accounts.

    Must run inside an application context. Safe to call on every start.
    """
    db.create_all()
    if User.query.filter_by(role=ADMIN).first():
        return False
    admin = User(
        username=current_app.config.get('ADMIN_USERNAME', 'admin'),
        password_hash=hash_password(current_app.config.get('ADMIN_PASSWORD', 'admin123')),
        role=ADMIN,
        name='System Administrator',
        email='admin@school.edu',
    )
    db.session.add(admin)
    db.session.flush()
    if seed_demo:
        seed_demo_data(admin)
    db.session.commit()
    logger.info("Bootstrapped admin account '%s'%s", admin.username, " with demo data" if seed_demo else "")
    return True


def seed_demo_data(author):
    """Add demo teachers, classes, subjects, students and announcements.

    Rows are added to the current session; the caller commits.
    """
    teacher_pw = hash_password('teacher123')
    teachers = [User(username=u, password_hash=teacher_pw, role=TEACHER, name=n, email=e)
                for u, n, e in DEMO_TEACHERS]
    db.session.add_all(teachers)
    db.session.flush()

    classes = [
        SchoolClass(name='Class 10-A', grade='10', section='A', teacher_id=teachers[0].id, capacity=35),
        SchoolClass(name='Class 9-B', grade='9', section='B', teacher_id=teachers[1].id, capacity=32),
    ]
    db.session.add_all(classes)
    db.session.flush()

    db.session.add_all([
        Subject(name='Mathematics', code='MATH10', class_id=classes[0].id, teacher_id=teachers[0].id),
        Subject(name='English', code='ENG10', class_id=classes[0].id, teacher_id=teachers[1].id),
        Subject(name='Science', code='SCI9', class_id=classes[1].id, teacher_id=teachers[0].id),
    ])

    student_pw = hash_password('student123')
    for username, name, email, roll, class_idx, gender in DEMO_STUDENTS:
        user = User(username=username, password_hash=student_pw, role=STUDENT, name=name, email=email)
        db.session.add(user)
        db.session.flush()
        db.session.add(Student(
            user_id=user.id,
            roll_number=roll,
            class_id=classes[class_idx].id,
            gender=gender,
            date_of_birth=date(2008, 5, 15),
            parent_name='Parent Name',
        ))

    db.session.add_all([
        Announcement(title='Welcome Back!',
                     content='Welcome to the new academic year. Wishing everyone a great year ahead!',
                     author_id=author.id, target_role='all'),
        Announcement(title='Mid-Term Exams Schedule',
                     content='Mid-term examinations will commence from next Monday. Please check the timetable.',
                     author_id=author.id, target_role='all'),
    ])
    db.session.flush()
    logger.info("Seeded demo data: %d teachers, %d classes, %d students",
                len(teachers), len(classes), len(DEMO_STUDENTS))


def generate_password(length: int = 16) -> str:
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def reset_admin_password(username=None):
    """Give the admin account a fresh random password and return it."""
    username = username or current_app.config.get('ADMIN_USERNAME', 'admin')
    new_pw = generate_password()
    user = User.query.filter_by(username=username).first()
    if not user:
        user = User(username=username, password_hash=hash_password(new_pw), role=ADMIN,
                    name='System Administrator')
        db.session.add(user)
    else:
        user.password_hash = hash_password(new_pw)
    db.session.commit()
    logger.info("Reset password for admin '%s'", username)
    return new_pw
