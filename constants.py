import os

from dotenv import load_dotenv

load_dotenv()


def _origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))

FRONTEND_URL = _origins(os.getenv("FRONTEND_URL", "http://localhost:5173"))
SOCKET_CORS_ORIGIN = _origins(os.getenv("SOCKET_CORS_ORIGIN", "http://localhost:5173"))
CORS_METHODS = ["GET", "POST", "PUT", "DELETE"]

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

MAX_PARTICIPANTS = 2  # one-to-one peer connections only
