from school_admin import create_app
from school_admin.models import User

# create_app creates the schema and bootstraps the admin account on first run
app = create_app()

with app.app_context():
    print(f"Database ready at {app.config['SQLALCHEMY_DATABASE_URI']} ({User.query.count()} users)")
