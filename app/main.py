from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.student_subject_selections.router import router as student_subject_selections_router
from app.api.v1.teacher_assignments.cache import ResolutionCache
from app.api.v1.teacher_assignments.router import router as teacher_assignments_router
from app.core.config import settings
from app.core.logging_config import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings)

    app = FastAPI(title="Teacher Assignment Service")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One resolution cache per process; writes invalidate it synchronously
    app.state.resolution_cache = ResolutionCache(ttl_seconds=settings.resolution_cache_ttl_seconds)

    # Routers
    app.include_router(teacher_assignments_router)
    app.include_router(student_subject_selections_router)

    return app


app = create_app()
