# backend/camtracker/constants.py
"""
Global Constants for CamTracker

Centralized location for pipeline constants to avoid hardcoded values
throughout the codebase. Values that operators may want to tune are exposed
again through config.Settings with these as defaults.
"""

from .enums import JobType

# =============================================================================
# JOB QUEUE
# =============================================================================

MIN_JOB_PRIORITY = 1
MAX_JOB_PRIORITY = 10
DEFAULT_JOB_PRIORITY = 5

DEFAULT_MAX_CONCURRENCY = 2
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 5.0
DEFAULT_JOB_TIMEOUT_SECONDS = 120.0

# Dispatch loop sleeps
QUEUE_BUSY_POLL_SECONDS = 1.0
QUEUE_IDLE_POLL_SECONDS = 2.0

# Terminal job garbage collection
JOB_RETENTION_HOURS = 24
JOB_CLEANUP_INTERVAL_SECONDS = 5 * 60

JOB_LIST_MAX_LIMIT = 100
JOB_LIST_DEFAULT_LIMIT = 50

# Priorities used by the scheduling helpers
JOB_TYPE_PRIORITIES = {
    JobType.FETCH_DEFAULT_IMAGE: 6,
    JobType.CACHE_IMAGE: 3,
    JobType.CLEANUP_CACHE: 1,
    JobType.POPULATE_DEFAULT_IMAGES: 5,
}

JOB_TYPE_DESCRIPTIONS = {
    JobType.FETCH_DEFAULT_IMAGE: "Search Wikimedia Commons and store a default image for a camera model",
    JobType.CACHE_IMAGE: "Download an external image into the local cache",
    JobType.CLEANUP_CACHE: "Remove expired files from the image cache",
    JobType.POPULATE_DEFAULT_IMAGES: "Fetch default images for every camera model in the inventory",
}

# =============================================================================
# WIKIMEDIA COMMONS
# =============================================================================

WIKIMEDIA_API_URL = "https://commons.wikimedia.org/w/api.php"
WIKIMEDIA_USER_AGENT = (
    "CamTracker-Deluxe/1.0 (https://github.com/camtracker/camtracker-deluxe; "
    "camera-inventory default image fetcher)"
)
WIKIMEDIA_TIMEOUT_SECONDS = 10.0
WIKIMEDIA_FILE_NAMESPACE = 6
WIKIMEDIA_IMAGEINFO_PROPS = "url|size|mime|extmetadata"
WIKIMEDIA_ALLOWED_HOSTS = ("upload.wikimedia.org", "commons.wikimedia.org")
WIKIMEDIA_SOURCE_NAME = "Wikipedia Commons"

DEFAULT_SEARCH_LIMIT = 10
BEST_IMAGE_SEARCH_LIMIT = 5
MAX_SEARCH_SUGGESTIONS = 10
SUGGESTION_MIN_QUALITY = 4
URL_VALIDATION_TIMEOUT_SECONDS = 5.0

# Quality scoring (1-10)
QUALITY_BASE_SCORE = 5
QUALITY_MIN_SCORE = 1
QUALITY_MAX_SCORE = 10
QUALITY_LARGE_SIDE_PX = 800
QUALITY_MEDIUM_SIDE_PX = 400
QUALITY_SMALL_SIDE_PX = 300
QUALITY_ASPECT_MIN = 0.75
QUALITY_ASPECT_MAX = 2.0
QUALITY_SMALL_FILE_BYTES = 50_000

# Relevance scoring
RELEVANCE_MODEL_MATCH = 10
RELEVANCE_BRAND_MATCH = 5
RELEVANCE_CAMERA_TERM = 2
RELEVANCE_PHOTO_TERM = 1
RELEVANCE_NEGATIVE_TERM = -3
RELEVANCE_PHOTO_TERMS = ("img", "photo")
RELEVANCE_NEGATIVE_TERMS = ("logo", "diagram", "manual")

# Minimum acceptance for the best candidate
BEST_IMAGE_MIN_QUALITY = 3
BEST_IMAGE_MIN_DIMENSION = 200

# =============================================================================
# DOWNLOAD & TRANSCODE
# =============================================================================

DOWNLOAD_TIMEOUT_SECONDS = 30.0
MAX_DOWNLOAD_BYTES = 5 * 1024 * 1024
DOWNLOAD_CHUNK_SIZE = 64 * 1024
TARGET_MAX_WIDTH = 800
TARGET_MAX_HEIGHT = 600
JPEG_INITIAL_QUALITY = 85
JPEG_QUALITY_STEP = 15
JPEG_MIN_QUALITY = 30
TARGET_MAX_FILE_BYTES = 500 * 1024
TEMP_FILE_SUFFIX = "_temp"
TEMP_FILE_MAX_AGE_SECONDS = 60 * 60

DEFAULT_IMAGES_URL_PREFIX = "/uploads/default-images"
PLACEHOLDER_IMAGE_URL = "/uploads/placeholders/camera-placeholder.svg"
PLACEHOLDER_ATTRIBUTION = "Generic camera placeholder"

# =============================================================================
# IMAGE CACHE
# =============================================================================

CACHE_MAX_AGE_DAYS = 30
CACHE_URL_PREFIX = "/cached-images"
CACHE_DEFAULT_EXTENSION = ".jpg"
CACHE_BATCH_CONCURRENCY = 3
CACHE_BATCH_DELAY_SECONDS = 1.0
CACHE_BATCH_MAX_URLS = 100
CACHE_TEMP_SUFFIX = ".part"

JPEG_MAGIC = b"\xff\xd8\xff"
PNG_MAGIC = b"\x89PNG"
WEBP_RIFF_MAGIC = b"RIFF"
WEBP_FORMAT_MAGIC = b"WEBP"

# =============================================================================
# STATIC SERVING
# =============================================================================

CACHED_IMAGES_MAX_AGE_SECONDS = 30 * 24 * 60 * 60
UPLOADS_MAX_AGE_SECONDS = 7 * 24 * 60 * 60
CACHE_STATUS_HEADER = "x-cache-status"
RESPONSE_TIME_HEADER = "X-Response-Time"
SLOW_IMAGE_RESPONSE_MS = 2000

# =============================================================================
# PERFORMANCE TELEMETRY
# =============================================================================

RESPONSE_TIME_WINDOW = 100
LARGE_IMAGE_BYTES = 2 * 1024 * 1024
SUGGESTION_MIN_REQUESTS = 20
SUGGESTION_HIT_RATE_THRESHOLD = 70
SUGGESTION_SLOW_AVG_MS = 1000
SUGGESTION_LARGE_IMAGE_COUNT = 5

# (threshold, penalty) pairs checked in order, first match wins
GRADE_HIT_RATE_PENALTIES = ((50, 40), (70, 20), (90, 10))
GRADE_RESPONSE_TIME_PENALTIES = ((2000, 40), (1000, 20), (500, 10))
GRADE_LARGE_IMAGE_PENALTIES = ((30, 20), (15, 10), (5, 5))
GRADE_BUCKETS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

# =============================================================================
# POPULATOR
# =============================================================================

POPULATE_DEFAULT_BATCH_SIZE = 10
POPULATE_MIN_BATCH_SIZE = 1
POPULATE_MAX_BATCH_SIZE = 50
POPULATE_DEFAULT_MIN_QUALITY = 4
POPULATE_DELAY_BETWEEN_BATCHES_SECONDS = 2.0
POPULATE_DELAY_BETWEEN_IMAGES_SECONDS = 1.0

# =============================================================================
# ATTRIBUTION
# =============================================================================

ATTRIBUTION_TOP_ISSUES = 5
ATTRIBUTION_HIGH_QUALITY_THRESHOLD = 8
COMPLIANCE_WARNING_RATE = 80
MISSING_ATTRIBUTION_WARNING_COUNT = 5
WIKIMEDIA_REVIEW_COUNT = 10
