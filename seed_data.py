from school_admin import create_app, db
from school_admin.models import Student, User
from school_admin.seed import seed_demo_data
from school_admin.security import ADMIN, TEACHER


def seed():
    app = create_app()
    with app.app_context():
        print("Seeding database...")
        if Student.query.first() or User.query.filter_by(role=TEACHER).first():
            print("Demo data skipped: store already holds teachers or students.")
            return
        admin = User.query.filter_by(role=ADMIN).first()
        seed_demo_data(admin)
        db.session.commit()
        print("Seeding complete. Logins: smith/teacher123, alice/student123")


if __name__ == "__main__":
    seed()
