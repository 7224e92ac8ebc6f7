import os
from dotenv import load_dotenv

load_dotenv()


def _database_uri():
    url = os.getenv("DATABASE_URL", "sqlite:///freelancedash.db")
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    sslrootcert = os.getenv("DB_SSLROOTCERT")
    if sslrootcert and url.startswith("postgresql"):
        url = f"{url}?sslmode=verify-full&sslrootcert={sslrootcert}"
    return url


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = _database_uri()

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
    ACCESS_EXPIRES = int(os.getenv("ACCESS_EXPIRES", 86400))

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # invitation links stay usable for this many days
    INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", 7))

    # client revision requests allowed per milestone
    MILESTONE_MAX_REVISIONS = int(os.getenv("MILESTONE_MAX_REVISIONS", 2))

    STORE_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", 3))
    STORE_RETRY_BASE_DELAY = float(os.getenv("STORE_RETRY_BASE_DELAY", 0.2))

    EMAIL_ENABLED = os.getenv("EMAIL_ENABLED", "false").lower() == "true"
    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT = int(os.getenv("SMTP_PORT", 465))
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "noreply@freelancedash.com")
    EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "FreelanceDash")

    INVOICE_CURRENCY = os.getenv("INVOICE_CURRENCY", "RM")
    INVOICE_DUE_DAYS = int(os.getenv("INVOICE_DUE_DAYS", 30))


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    EMAIL_ENABLED = False
    STORE_RETRY_BASE_DELAY = 0.0
    BCRYPT_LOG_ROUNDS = 4


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
