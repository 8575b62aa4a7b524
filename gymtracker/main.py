import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .settings import get_settings
from .db import init_db
from .errors import AuthError
from .services.auth import router as auth_router
from .services.exercises import router as exercises_router
from .services.routines import router as routines_router
from .services.stats import router as stats_router
from .services.workouts import router as workouts_router

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Gym Tracker")

app.include_router(stats_router, prefix="/api")
app.include_router(workouts_router, prefix="/api")
app.include_router(routines_router, prefix="/api")
app.include_router(exercises_router, prefix="/api")
app.include_router(auth_router, prefix="/auth")


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.exception_handler(AuthError)
async def auth_unavailable(request: Request, exc: AuthError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.on_event("startup")
async def on_startup() -> None:
    if get_settings().storage_backend == "sqlite":
        await init_db()
    logger.info("app: started with %s storage", get_settings().storage_backend)
