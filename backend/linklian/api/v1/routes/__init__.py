# backend/linklian/api/v1/routes/__init__.py
from fastapi import APIRouter
from .import_enrollment import router as import_enrollment_router
from .import_program import router as import_program_router
from .import_section_schedule import router as import_section_schedule_router
from .import_student import router as import_student_router
from .import_subject import router as import_subject_router
from .import_teacher import router as import_teacher_router
from .post_comment import router as post_comment_router

# Create a main router that includes all sub-routers
router = APIRouter()

# Bulk imports
router.include_router(
    import_enrollment_router, prefix="/import-enrollment", tags=["Import Enrollment"]
)
router.include_router(
    import_program_router, prefix="/import-program", tags=["Import Program"]
)
router.include_router(
    import_section_schedule_router,
    prefix="/import-section-schedule",
    tags=["Import Section Schedule"],
)
router.include_router(
    import_student_router, prefix="/import-student", tags=["Import Student"]
)
router.include_router(
    import_subject_router, prefix="/import-subject", tags=["Import Subject"]
)
router.include_router(
    import_teacher_router, prefix="/import-teacher", tags=["Import Teacher"]
)

# Social feed
router.include_router(post_comment_router, prefix="/post-comment", tags=["Post Comments"])
