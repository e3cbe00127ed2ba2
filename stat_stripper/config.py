"""Runtime configuration for the statistic stripping run."""

# Logging
LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"

# Users API
PAGE_SIZE = 100  # maximum page size accepted by /users

# HTTP client
API_TIMEOUT = 30  # seconds
API_MAX_RETRIES = 5  # only applied to 429 responses
API_BACKOFF_FACTOR = 1.5
REQUESTS_PER_SECOND = 10
THROTTLE_JITTER = 0.075  # seconds of random delay added to each call
