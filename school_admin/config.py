import os


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.environ.get("SECRET_KEY", "school-admin-dev-secret-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Session lifetime; a login stays valid for one day by default
    SESSION_TIMEOUT_MINUTES = int(os.environ.get("SESSION_TIMEOUT_MINUTES", 24 * 60))
    SESSION_COOKIE_HTTPONLY = True
    PASSWORD_MIN_LENGTH = int(os.environ.get("PASSWORD_MIN_LENGTH", 6))
    # Bootstrap
    ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")
    SEED_DEMO_DATA = _env_flag("SEED_DEMO_DATA", "true")
    # Listing caps
    ATTENDANCE_REPORT_LIMIT = int(os.environ.get("ATTENDANCE_REPORT_LIMIT", 200))
    ANNOUNCEMENT_LIST_LIMIT = int(os.environ.get("ANNOUNCEMENT_LIST_LIMIT", 20))
    DASHBOARD_ANNOUNCEMENT_LIMIT = int(os.environ.get("DASHBOARD_ANNOUNCEMENT_LIMIT", 5))


class DevelopmentConfig(BaseConfig):
    @staticmethod
    def database_uri(instance_path: str) -> str:
        db_path = os.environ.get("DATABASE_PATH")
        if db_path:
            return f"sqlite:///{db_path}"
        return "sqlite:///" + os.path.join(instance_path, "school.db")


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URI", "sqlite:///:memory:")


class ProductionConfig(BaseConfig):
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URI", "sqlite:///school.db")
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "true")


CONFIGS = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
