import os

# Redis Connection
REDIS_URL = os.environ.get("CERTREG_REDIS_URL", "redis://localhost:6379/2")

# Signed Requests
REQUEST_MAX_AGE_SECONDS = 300      # accepted clock skew either way
REQUEST_CLAIM_TTL_SECONDS = 2 * REQUEST_MAX_AGE_SECONDS   # outlives every timestamp still in the window

# Event Paging
EVENTS_MAX_PAGE = 500
