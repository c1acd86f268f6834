import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./planner.db")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Upper bound on threads used by a whole-user calendar sync
SYNC_MAX_WORKERS = int(os.getenv("SYNC_MAX_WORKERS", "4"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
