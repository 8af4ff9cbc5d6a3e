"""
Basic configuration

- CORS origins for development and production
- Data source selection (JSON files for local/demo, REST store for production)
- Aggregation knobs (trend window, appointment windows, fan-out limit)
- Everything is read from environment variables with sane defaults
"""
import os

# Default localhost origins for development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8081",
]

# Get additional CORS origins from environment variable
ADDITIONAL_CORS_ORIGINS = os.getenv("CORS_ORIGINS", "").split(",") if os.getenv("CORS_ORIGINS") else []

# Filter out empty strings from split
ADDITIONAL_CORS_ORIGINS = [origin.strip() for origin in ADDITIONAL_CORS_ORIGINS if origin.strip()]

# Combine default and additional origins
CORS_ORIGINS = DEFAULT_CORS_ORIGINS + ADDITIONAL_CORS_ORIGINS

# Data source: "json" reads DATA_DIR, "rest" talks to REST_BASE_URL
GATEWAY_BACKEND = os.getenv("GATEWAY_BACKEND", "json").strip().lower()
DATA_DIR = os.getenv("DATA_DIR", "data")
REST_BASE_URL = os.getenv("REST_BASE_URL", "")
REST_API_KEY = os.getenv("REST_API_KEY", "")
REST_TIMEOUT_SECONDS = float(os.getenv("REST_TIMEOUT_SECONDS", "10"))

# Upper bound on concurrent gateway calls per aggregation
GATEWAY_MAX_CONCURRENCY = int(os.getenv("GATEWAY_MAX_CONCURRENCY", "8"))

# Trend series length (months, current month included)
TREND_MONTHS = int(os.getenv("TREND_MONTHS", "6"))

# Appointment windows
UPCOMING_WINDOW_DAYS = int(os.getenv("UPCOMING_WINDOW_DAYS", "90"))
# Days added on each side of "today" before the exact date-string match
TODAY_WINDOW_BUFFER_DAYS = int(os.getenv("TODAY_WINDOW_BUFFER_DAYS", "1"))

# Timezone used to decide the viewer's "today"
VIEWER_TIMEZONE = os.getenv("VIEWER_TIMEZONE", "UTC")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
