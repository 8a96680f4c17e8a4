"""Issue and error codes surfaced by mapping validation and sync."""

REQUIRED_FIELD = "REQUIRED_FIELD"
INVALID_COLUMN = "INVALID_COLUMN"
CONNECTION_NOT_FOUND = "CONNECTION_NOT_FOUND"
CONNECTION_FAILED = "CONNECTION_FAILED"
VALIDATION_ERROR = "VALIDATION_ERROR"
SYNC_ERROR = "SYNC_ERROR"
