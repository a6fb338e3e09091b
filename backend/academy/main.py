import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from academy.database import init_db
from academy.errors import DomainError
from academy.routes import competitions, courts, reservations

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Academy Reservations API", version="0.1.0")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


# Include routers
app.include_router(courts.router, prefix="/api", tags=["courts"])
app.include_router(reservations.router, prefix="/api", tags=["reservations"])
app.include_router(competitions.router, prefix="/api", tags=["competitions"])


@app.on_event("startup")
def on_startup():
    init_db()

    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info("Academy Reservations API ready: %d routes", route_count)


@app.get("/api/health")
def health_check():
    """Liveness check"""
    return {"app_name": app.title, "version": app.version, "status": "healthy"}
