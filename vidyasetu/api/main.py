import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from vidyasetu import __version__
from vidyasetu.api.responses import register_exception_handlers
from vidyasetu.api.routes import auth, content, progress, quizzes, users
from vidyasetu.core.models import utcnow
from vidyasetu.core.services.file_service import URL_PREFIX
from vidyasetu.core.services.logging import get_logging_service
from vidyasetu.core.services.settings_config_service import get_settings_service

settings = get_settings_service()

app = FastAPI(title="VidyaSetu API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_list("server", "cors_origins", ["http://localhost:3000"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    get_logging_service().log_request(
        request.method,
        request.url.path,
        response.status_code,
        int((time.perf_counter() - started) * 1000),
    )
    return response


app.include_router(auth.router)
app.include_router(content.router)
app.include_router(quizzes.router)
app.include_router(progress.router)
app.include_router(users.router)


@app.get("/api/health")
async def health():
    return {
        "success": True,
        "status": "online",
        "message": "VidyaSetu API is running",
        "version": __version__,
        "timestamp": utcnow().isoformat(),
    }


# Uploaded files
UPLOAD_DIR = Path(settings.get_upload_defaults()["directory"])
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount(URL_PREFIX, StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")
