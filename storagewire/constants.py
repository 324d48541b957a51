"""Constants shared across the package."""

DEFAULT_HOST = "firebasestorage.googleapis.com"
DEFAULT_PROTOCOL = "https"
API_VERSION_PREFIX = "/v0"
GCS_HOST = "storage.googleapis.com"

# Resumable chunks must be a multiple of this many bytes
CHUNK_GRANULARITY = 256 * 1024
RESUMABLE_UPLOAD_CHUNK_SIZE = CHUNK_GRANULARITY * 8
MULTIPART_UPLOAD_THRESHOLD = RESUMABLE_UPLOAD_CHUNK_SIZE

# Seconds
DEFAULT_MAX_OPERATION_RETRY_TIME = 2 * 60
DEFAULT_MAX_UPLOAD_RETRY_TIME = 10 * 60

METADATA_CONTENT_TYPE = "application/json; charset=utf-8"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_RANGE = "Range"
HEADER_UPLOAD_PROTOCOL = "X-Goog-Upload-Protocol"
HEADER_UPLOAD_COMMAND = "X-Goog-Upload-Command"
HEADER_UPLOAD_OFFSET = "X-Goog-Upload-Offset"
HEADER_UPLOAD_STATUS = "X-Goog-Upload-Status"
HEADER_UPLOAD_URL = "X-Goog-Upload-URL"
HEADER_UPLOAD_CONTENT_LENGTH = "X-Goog-Upload-Header-Content-Length"
HEADER_UPLOAD_CONTENT_TYPE = "X-Goog-Upload-Header-Content-Type"
HEADER_UPLOAD_SIZE_RECEIVED = "X-Goog-Upload-Size-Received"
