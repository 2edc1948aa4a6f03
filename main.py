import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import close_client, database_status, ensure_indexes, get_db, utcnow
from responses import fail, ok
from routers import ROUTERS

logger = logging.getLogger(__name__)

AVAILABLE_ROUTES = [
    "GET /api/health",
    "POST /api/auth/register",
    "POST /api/auth/login",
    "GET /api/auth/me",
    "POST /api/auth/link-account",
    "GET /api/clients",
    "GET /api/partners",
    "GET /api/partners/search",
    "GET /api/orders",
    "GET /api/admins/dashboard",
    "GET /api/books",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        ensure_indexes(get_db())
    except PyMongoError as e:
        logger.warning("Could not create indexes, continuing without them: %s", e)
    logger.info("Pixisphere API starting in %s mode", config.ENVIRONMENT)

    yield

    close_client()
    logger.info("Pixisphere API shut down")


app = FastAPI(title="Pixisphere API", version=config.VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router)


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=fail("Validation errors", errors))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        body = fail(f"Route {request.url.path} not found", availableRoutes=AVAILABLE_ROUTES)
    else:
        body = fail(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    details = exc.details or {}
    keys = list(details.get("keyValue") or details.get("keyPattern") or {})
    field = keys[0] if keys else "Resource"
    logger.info("Duplicate key on %s: %s", request.url.path, field)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=fail(f"{field} already exists"))


@app.exception_handler(JWTError)
async def jwt_error_handler(request: Request, exc: JWTError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=fail("Invalid token"),
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = str(exc) if config.is_development() else "Something went wrong"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=fail("Internal server error", error=detail),
    )


# Meta
@app.get("/", tags=["meta"])
def read_root():
    return ok({"version": config.VERSION, "health": "/api/health"}, "Welcome to Pixisphere API")


@app.get("/api/health", tags=["meta"])
def health(db: Database = Depends(get_db)):
    return ok(
        {
            "status": "OK",
            "version": config.VERSION,
            "environment": config.ENVIRONMENT,
            "timestamp": utcnow().isoformat(),
            "database": database_status(db),
        },
        "Pixisphere API is healthy",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
