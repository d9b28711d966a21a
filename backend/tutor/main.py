import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutor.core.config import get_settings
from tutor.core.logging import configure_logging
from tutor.routers import ask, models, rag


settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Curriculum Tutor API starting (models: %s)", ", ".join(settings.generation_models))
    yield


app = FastAPI(
    title="Curriculum Tutor API",
    description="Curriculum-grounded answers to student questions",
    version="1.0.0",
    lifespan=lifespan,
)
# Avoid 307 redirects for trailing slash (e.g. /ask/ -> /ask) that can cause redirect loops behind nginx
app.router.redirect_slashes = False

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:5173",
        "http://localhost",
        "http://127.0.0.1",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(ask.router, prefix="/ask", tags=["Ask"])
app.include_router(rag.router, prefix="/rag", tags=["RAG"])
app.include_router(models.router, prefix="/models", tags=["Models"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
