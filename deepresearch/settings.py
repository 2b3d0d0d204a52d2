"""Configuration settings for the deep research orchestrator."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# Orchestration defaults
DEFAULT_LIMIT = int(os.getenv("DEFAULT_LIMIT", "20"))
MAX_ITERATIONS = 3

# HTTP providers
# Each provider enforces its own timeout; the orchestrator has none.
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15.0"))
HTTP_MAX_BYTES = 2_000_000  # 2MB cap per fetched URL

# Retry settings (RAG endpoint only)
MAX_RETRIES = 3
RETRY_BACKOFF_FACTOR = 2.0

# Vector/RAG search endpoint (POST {query, subqueries, limit})
RAG_ENDPOINT = os.getenv("RAG_ENDPOINT")
RAG_API_KEY = os.getenv("RAG_API_KEY")
