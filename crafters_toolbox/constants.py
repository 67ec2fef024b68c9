"""Global constants for crafters-toolbox"""

APP_NAME = "crtb"
LOG_FORMAT = "%(message)s"

# Project files
PROJECT_CONFIG_FILE = "crtb.config.yml"
PROPERTIES_FILE = "crtb.properties.yml"
SERVER_PROPERTIES_FILE = "server.properties"

# Directory structure
DEFAULT_COMPONENTS_DIR = "components"
DEFAULT_CACHE_DIR = ".cache/components"
DEFAULT_SERVER_DIR = "server"
HTTP_CACHE_DIR = "http"
HTTP_CONTENT_DIR = "content"
HTTP_META_FILE = "meta.json"
WORLDS_CONTAINER_DIR = "worlds"
DEFAULT_LEVEL_NAME = "world"

# Deployment manifest
DEPLOY_MANIFEST_FILE = ".crtb-deploy.json"
DEPLOY_MANIFEST_VERSION = 1

# Runner
DEFAULT_RUNNER_IMAGE = "eclipse-temurin:21-jdk"
DEFAULT_GRADLE_TASK = "build"
CONTAINER_TERM = "dumb"
CONTAINER_HOME = "/tmp"
FALLBACK_UID = 1000
FALLBACK_GID = 1000

# Timeouts (seconds)
HTTP_TIMEOUT = 120
SOURCE_SOFT_TIMEOUT = 60

# I/O
DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1MB
BUILD_LOG_TAIL_LINES = 20

# Progress display
STATUS_REFRESH_PER_SECOND = 8

# Error codes
class ErrorCode:
    CONFIG_FORMAT_ERROR = "CT001"
    SOURCE_UNAVAILABLE = "CT002"
    BUILD_FAILED = "CT003"
    ARTIFACT_MISSING = "CT004"
    ARTIFACT_AMBIGUOUS = "CT005"
    DEPLOY_FAILED = "CT006"
    UNSUPPORTED_KIND = "CT007"
    MANIFEST_IO_ERROR = "CT008"
    CANCELLED = "CT009"
    UNEXPECTED = "CT099"

# Environment variables
ENV_CACHE_DIR = "CRTB_CACHE_DIR"
ENV_LOG_LEVEL = "CRTB_LOG_LEVEL"
ENV_RUNNER_IMAGE = "CRTB_RUNNER_IMAGE"

# Display constants
EMOJI_SUCCESS = "✓"
EMOJI_ERROR = "✗"
EMOJI_CACHED = "≡"

# Messages
MSG_SOURCE_UNAVAILABLE = "source unavailable"
MSG_BUILD_FAILED = "build failed"
MSG_UNSUPPORTED = "unsupported on {server_type}"
MSG_ARTIFACT_MISSING = "artifact missing"
MSG_ARTIFACT_AMBIGUOUS = "artifact ambiguous"
MSG_DEPLOY_FAILED = "deploy failed"
MSG_UNEXPECTED = "unexpected error"
MSG_UP_TO_DATE = "up to date"
MSG_DEPLOYED = "deployed"
MSG_CANCELLED = "cancelled"
MSG_STILL_RESOLVING = "still resolving after {seconds}s"
