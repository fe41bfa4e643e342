from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.tasks import task_runner
from app.endpoints import document, exam, progress
from fastapi.exceptions import RequestValidationError
from app.middleware.exceptions import global_exception_handler, validation_exception_handler
from app.middleware.logging import RequestLoggingMiddleware
import logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(HTTPException, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(document.router, prefix="/documents", tags=["Documents"])
app.include_router(exam.router, prefix="/exams", tags=["Exams"])
app.include_router(progress.router, prefix="/progress", tags=["Progress"])

@app.on_event("startup")
async def startup_event():
    configure_logging()
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")

@app.on_event("shutdown")
async def shutdown_event():
    if task_runner.pending:
        logger.info(f"Waiting for {task_runner.pending} background task(s) to finish")
    await task_runner.drain()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
