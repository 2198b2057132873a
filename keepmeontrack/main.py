from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from keepmeontrack.api.deps import limiter
from keepmeontrack.api.endpoints import auth, dashboard, goals, habits, milestones, suggestions
from keepmeontrack.core.config import settings
from keepmeontrack.core.database import init_db
from keepmeontrack.core.exceptions import EntityNotFound, InvalidInput, StorageError, TrackerError

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("security")

ERROR_STATUS = {
    InvalidInput: 400,
    EntityNotFound: 404,
    StorageError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("%s started", settings.PROJECT_NAME)
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{(e.get('loc') or ['body'])[-1]}: {e.get('msg', 'Invalid value')}"
        for e in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"detail": "Validation Error", "errors": errors})


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        detail = "Your changes could not be saved. Please try again."
    else:
        detail = str(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred. Please try again later."}
    )


@app.get("/")
@limiter.limit("20/minute")
async def health_check(request: Request):
    return {"status": "ok", "message": f"{settings.PROJECT_NAME} backend is running"}


for module in (auth, goals, habits, milestones, dashboard, suggestions):
    app.include_router(module.router, prefix=settings.API_V1_STR)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
