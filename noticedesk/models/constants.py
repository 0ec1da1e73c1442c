"""Constants for noticedesk.

This module centralizes the fixed values used when building outbound notifications.
"""

# Free-text fields in outbound notifications
MAX_FIELD_LENGTH = 1024
NO_REASON_FALLBACK = "No reason provided"
NO_REVIEW_COMMENT_FALLBACK = "No review comment provided"

# Display identity fallbacks
UNKNOWN_USER_NAME = "Unknown user"
UNKNOWN_REVIEWER_NAME = "Reviewer"
DEFAULT_WORKSPACE_NAME = "Workspace"

# Embed colors
COLOR_NEUTRAL = 0x3B82F6  # blue
COLOR_SUCCESS = 0x10B981  # green
COLOR_FAILURE = 0xEF4444  # red
