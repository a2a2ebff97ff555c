import os


def _csv(name, default=""):
    """Split a comma-separated env var into a clean lowercase list."""
    raw = os.environ.get(name, default)
    return [v.strip().lower() for v in raw.split(",") if v.strip()]


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

    # --- Reseller (MyOwnFreeHost) ---
    # Values in the "mofh_config" settings row override these at runtime.
    MOFH_API_URL = os.environ.get("MOFH_API_URL", "https://panel.myownfreehost.net")
    MOFH_API_USERNAME = os.environ.get("MOFH_API_USERNAME")
    MOFH_API_PASSWORD = os.environ.get("MOFH_API_PASSWORD")
    MOFH_DEFAULT_PLAN = os.environ.get("MOFH_DEFAULT_PLAN", "")
    MOFH_CPANEL_URL = os.environ.get("MOFH_CPANEL_URL", "https://cpanel.byethost.com")
    RESELLER_TIMEOUT = float(os.environ.get("RESELLER_TIMEOUT", 30))
    MOFH_CALLBACK_IPS = _csv("MOFH_CALLBACK_IPS")  # empty = accept callbacks from anywhere

    # --- Domains / DNS ---
    HOSTING_NAMESERVERS = _csv("HOSTING_NAMESERVERS")          # empty = built-in byet.org set
    HOSTING_ALLOWED_DOMAINS = _csv("HOSTING_ALLOWED_DOMAINS")  # empty = any base domain
    DNS_RESOLVERS = _csv("DNS_RESOLVERS", "8.8.8.8,1.1.1.1")
    DNS_TIMEOUT = float(os.environ.get("DNS_TIMEOUT", 5))

    # --- Account policy ---
    HOSTING_ACCOUNT_LIMIT = int(os.environ.get("HOSTING_ACCOUNT_LIMIT", 3))
    DEACTIVATE_LIMIT = int(os.environ.get("DEACTIVATE_LIMIT", 2))
    DEACTIVATE_WINDOW_HOURS = int(os.environ.get("DEACTIVATE_WINDOW_HOURS", 12))

    # --- Email (SMTP) ---
    MAIL_SMTP_HOST = os.environ.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    MAIL_SMTP_PORT = int(os.environ.get("MAIL_SMTP_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "HostPanel")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")  # defaults to MAIL_USERNAME

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

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "MOFH_API_USERNAME",
            "MOFH_API_PASSWORD",
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
    """Testing — in-memory SQLite, CSRF disabled, fake reseller credentials."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    APP_BASE_URL = "http://localhost:5000"
    MOFH_API_URL = "https://panel.example.test"
    MOFH_API_USERNAME = "reseller_test"
    MOFH_API_PASSWORD = "reseller_secret"
    MOFH_DEFAULT_PLAN = "free_plan"
    MOFH_CPANEL_URL = "https://cpanel.example.test"
    HOSTING_NAMESERVERS = []
    HOSTING_ALLOWED_DOMAINS = ["hostprovider.net", "freesite.dev"]
    DNS_RESOLVERS = ["8.8.8.8"]
    DNS_TIMEOUT = 1.0
    RESELLER_TIMEOUT = 5.0
    MOFH_CALLBACK_IPS = []
    MAIL_USERNAME = None
    MAIL_PASSWORD = None
    WTF_CSRF_ENABLED = False  # disable CSRF for test requests
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
