import os
from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = os.environ.get("LOG_FORMAT", "console")

# Page analysis batching. Bounds how much extracted text is held at once.
PAGE_BATCH_SIZE = int(os.environ.get("PAGE_BATCH_SIZE", "10"))
BATCH_PAUSE_SECONDS = float(os.environ.get("BATCH_PAUSE_SECONDS", "0.1"))
ANALYSIS_WORKERS = int(os.environ.get("ANALYSIS_WORKERS", "1"))

# Reader defaults
DEFAULT_SECONDS_PER_PAGE = float(os.environ.get("DEFAULT_SECONDS_PER_PAGE", "120"))
DEFAULT_SESSION_MINUTES = int(os.environ.get("DEFAULT_SESSION_MINUTES", "30"))
DEFAULT_FOCUS_SCORE = 0.8
MIN_PAGES_FOR_PERSONALIZED_SPEED = int(
    os.environ.get("MIN_PAGES_FOR_PERSONALIZED_SPEED", "10")
)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
