"""
Constants and configuration values for Starview.

This module contains all hardcoded values, URLs, header values, timeouts, and
other constants used throughout the application.
"""

# Game API URLs
API_HOST = "https://shijtswygamegf.leiting.com/api/index.php/"
TOOL_SIGNUP = "tool/signup"
LOAD = "load"
ASSET_GET_PATH = "asset/get_path"
ASSET_VERSION_INFO = "asset/version_info"

# Header names expected by the game server
HEADER_USER_AGENT = "user-agent"
HEADER_CONTENT_TYPE = "content-type"
HEADER_PARAM = "param"
HEADER_UDID = "udid"
HEADER_SHORT_UDID = "short_udid"
HEADER_DEVICE_NAME = "device_name"
HEADER_APP_VERSION = "app_ver"
HEADER_DEVICE = "device"
HEADER_FLASH_VERSION = "x-flash-version"
HEADER_LOGIN_TOKEN = "login_token"
HEADER_ASSET_SIZE = "asset_size"

# Fixed identification header values
USER_AGENT = (
    "Mozilla/5.0 (Android; U; en-US) AppleWebKit/533.19.4 "
    "(KHTML, like Gecko) AdobeAIR/33.1"
)
CONTENT_TYPE = "application/x-www-form-urlencoded"
DEVICE_NAME = "stella"
APP_VERSION = "1.8.1"
FLASH_VERSION = "33,1,1,620"

# Values sent in request bodies
STORAGE_DIRECTORY_PATH = (
    "/data/user/0/com.leiting.wf/com.leiting.wf/Local Store/custom_Release_Android"
)
SIGNUP_DEVICE_ID = 12489124124.0
LOAD_DEVICE_TOKEN = "noDeviceToken"
LOAD_GRAPHICS_DEVICE_NAME = "OpenGL (Baseline Extended)"
LOAD_PLATFORM_OS_VERSION = "Android 12"

# Path prefixes removed from CDN URLs before saving files locally
DOWNLOAD_URL_STRIP_PREFIX = "/patch/gf/upload_assets"
DOWNLOAD_FILES_LIST_URL_STRIP_PREFIX = "/patch/gf/upload_assets/entities"

# Only one files list exists per concrete device type
FILES_LIST_MAX_COUNT = 2
FILES_LIST_CONCURRENCY = 2

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_DOWNLOAD_TIMEOUT = 300

# Download configuration defaults
DEFAULT_CONCURRENCY = 5
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 0.5  # seconds, doubled after every failed attempt
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_CHUNK_SIZE = 64 * 1024
BYTES_PER_MEGABYTE = 1024 * 1024
FILE_SIZE_MB_LOGGING_THRESHOLD = 1.0

HTTP_STATUS_SUCCESS_MIN = 200
HTTP_STATUS_SUCCESS_MAX = 299
# A 4xx answer to an authenticated call means the cached session was rejected
HTTP_STATUS_CLIENT_ERROR_MIN = 400
HTTP_STATUS_CLIENT_ERROR_MAX = 499

# File names
CACHE_FILE_NAME = "starview.cache"
CONFIG_FILE_NAME = "starview.yaml"
LOG_FILE_NAME = "starview.log"
APP_NAME = "starview"

# Logging configuration
LOGGER_NAME = "starview"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Environment variable names
LOG_LEVEL_ENV_VAR = "STARVIEW_LOG_LEVEL"
CONFIG_PATH_ENV_VAR = "STARVIEW_CONFIG"
