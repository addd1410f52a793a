from school_admin import create_app
from school_admin.seed import reset_admin_password


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        new_pw = reset_admin_password()
    # Print only the password for easy copying
    print(new_pw)
