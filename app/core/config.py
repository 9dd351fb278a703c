from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str

    # If DEV and you hit SSL cert issues, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # The primary power admin. Registering or logging in with this email
    # always yields the 'power' role, and it can never be demoted.
    POWER_ADMIN_EMAIL: str | None = None
    POWER_ADMIN_PASSWORD: str | None = None
    POWER_ADMIN_NAME: str | None = "Power Admin"
    ENV: str = "dev"  # "dev" or "prod"

    OTP_EXPIRE_MINUTES: int = 10
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    CACHE_TTL_SECONDS: int = 3600

    # --- EMAIL SETTINGS ---
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 2525
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str = "no-reply@noticeboard.edu"
    EMAILS_FROM_NAME: str = "Academic Notice Board"
    FRONTEND_URL: str = "http://localhost:5173"

    # --- RATE LIMITING ---
    REDIS_URL: str | None = None
    RATE_LIMIT_ENABLED: bool = True

    SEED_ACADEMIC_STRUCTURE: bool = False

    # Shared secret for the cron-triggered /api/jobs endpoints
    JOB_SECRET: str | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
