# backend/linklian/services/imports/constants.py

import enum
from datetime import timedelta


class ImportType(str, enum.Enum):
    ENROLLMENT = "enrollment"
    PROGRAM = "program"
    SECTION_SCHEDULE = "section-schedule"
    STUDENT = "student"
    SUBJECT = "subject"
    TEACHER = "teacher"


IMPORT_BATCH_SIZE = 50
IMPORT_MAX_CONCURRENT_BATCHES = 5
VALIDATION_TOKEN_EXPIRY = timedelta(minutes=30)

DUPLICATE_SKIPPED_REASON = "Duplicate data already in the system"

# "สถานะผู้ใช้" column -> user_sys.user_status; anything else is Active
USER_STATUS_MAP = {
    "ใช้งาน": "Active",
    "ไม่ใช้งาน": "Inactive",
    "ลาออก": "Resigned",
    "สำเร็จการศึกษา": "Graduated",
    "เกษียณ": "Retired",
    "active": "Active",
    "inactive": "Inactive",
    "resigned": "Resigned",
    "graduated": "Graduated",
    "retired": "Retired",
}
DEFAULT_USER_STATUS = "Active"
