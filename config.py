import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Outbound requests
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "20"))
# The results portals run on self-signed / expired certificates more often than not.
# This only ever applies to the ResultClient session, never process-wide.
VERIFY_SSL = _as_bool(os.getenv("VERIFY_SSL", "false"))
USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

# Heuristics for the portal page
MIN_RESPONSE_LENGTH = int(os.getenv("MIN_RESPONSE_LENGTH", "100"))
NOT_FOUND_MARKER = os.getenv("NOT_FOUND_MARKER", "Is Not Found")
NAME_NOISE_TOKEN = os.getenv("NAME_NOISE_TOKEN", "Credits")

# Range lookups
MAX_RANGE_SIZE = int(os.getenv("MAX_RANGE_SIZE", "1000"))

# Web app
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
