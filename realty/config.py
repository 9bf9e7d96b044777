import os


def _split_emails(value):
    """Parse a comma-separated list of email addresses (lowercased)."""
    return [e.strip().lower() for e in (value or "").split(",") if e.strip()]


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")

    # --- Branding ---
    SITE_NAME = os.environ.get("SITE_NAME", "Elvis Sells Houses")
    AGENT_NAME = os.environ.get("AGENT_NAME", "Elvis")

    # --- Admin allow-list ---
    # Only these addresses can ever hold the admin role.
    ADMIN_EMAILS = _split_emails(os.environ.get("ADMIN_EMAILS"))
    # Where CRM notifications go; defaults to the admin allow-list.
    ADMIN_NOTIFY_EMAILS = (
        _split_emails(os.environ.get("ADMIN_NOTIFY_EMAILS")) or ADMIN_EMAILS
    )

    # --- Email (SMTP) ---
    MAIL_SMTP_HOST = os.environ.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    MAIL_SMTP_PORT = int(os.environ.get("MAIL_SMTP_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")          # Google App Password
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "Elvis Sells Houses")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")  # defaults to MAIL_USERNAME

    # --- AI lead analysis (OpenAI-compatible chat completions) ---
    AI_GATEWAY_URL = os.environ.get(
        "AI_GATEWAY_URL", "https://api.openai.com/v1/chat/completions"
    )
    AI_API_KEY = os.environ.get("AI_API_KEY")
    AI_MODEL = os.environ.get("AI_MODEL", "gpt-4o-mini")
    AI_TIMEOUT = int(os.environ.get("AI_TIMEOUT", 60))

    # --- CRM table page sizes ---
    APPLICATIONS_PAGE_SIZE = 15
    LEADS_PAGE_SIZE = 10

    # --- Password reset ---
    PASSWORD_RESET_HOURS = 1

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    # --- Rate limiting (Flask-Limiter) ---
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "APP_BASE_URL",
            "ADMIN_EMAILS",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — in-memory SQLite, CSRF disabled."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    APP_BASE_URL = "http://localhost:5000"
    ADMIN_EMAILS = ["admin@realty.local"]
    ADMIN_NOTIFY_EMAILS = ["admin@realty.local", "office@realty.local"]
    AI_API_KEY = "test-ai-key"
    AI_GATEWAY_URL = "https://ai.example.test/v1/chat/completions"
    WTF_CSRF_ENABLED = False  # disable CSRF for test forms
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
