import os


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./library.db")

# "development" exposes exception details on the error page
ENVIRONMENT = os.getenv("LOCALLIBRARY_ENV", "production")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def is_development() -> bool:
    return ENVIRONMENT.lower() == "development"
