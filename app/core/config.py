from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()  # pick up a local .env before Settings reads the environment

class Settings(BaseSettings):
    DATABASE_URL: str
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 20

    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"
    CANDIDATE_CACHE_TTL_SECONDS: int = 300

    # Scheduling
    SCHEDULING_TOP_K: int = 3
    SCHEDULING_MAX_TOP_K: int = 10
    MAX_TRIP_LENGTH_DAYS: int = 60
    MAX_SEARCH_RANGE_DAYS: int = 366

    PROJECT_NAME: str = "TripSync Scheduler API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Date-consensus scheduling for group trips"

    SQL_ECHO: bool = False

    class Config:
        env_file = ".env"


settings = Settings()
