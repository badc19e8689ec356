from __future__ import annotations

MAX_SHEET_NAME_LENGTH = 31
SHEET_NAME_SEPARATOR = "|"
SHEET_NAME_SUFFIX_MARKER = "~"
MAX_SHEET_NAME_SUFFIX = 2**31 - 1

SINGLE_SHEET_NAME = "ResXResourceManager"
SINGLE_SHEET_FIXED_HEADERS = ("Project", "File", "Key")
FIXED_COLUMN_HEADERS = ("Key",)
COMMENT_HEADER_PREFIX = "Comment"
