# app/main.py
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.db import init_db, close_db
from app.core.errors import ServiceError, error_response

from app.api.v1.routers import auth, reactivation, password_reset, account, admin

from app.core.bootstrap import seed_roles_and_permissions, ensure_default_admin
from app.jobs.scheduler import run_daily
from app.services.inactivity import InactivitySweep
from app.services.sessions import SessionManager

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Errors raised by dependencies (the authorization gate) render like returned ones."""
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        # ("body", "email") -> "email"; a missing body has loc ("body",)
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "Validation failed", "reason": "validation", "errors": errors},
    )


async def _scheduled_sweep() -> None:
    await InactivitySweep(sessions=SessionManager()).run()


@app.on_event("startup")
async def on_startup():
    await init_db()
    # Roles and permissions must exist before anyone can log in
    await seed_roles_and_permissions()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()

    app.state.sweep_task = None
    if settings.enable_inactivity_sweep:
        app.state.sweep_task = asyncio.create_task(
            run_daily(settings.inactivity_sweep_hour, _scheduled_sweep, name="mark_inactive_users")
        )
        logger.info("[startup] Inactivity sweep scheduled daily at %02d:00 UTC", settings.inactivity_sweep_hour)


@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "sweep_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await close_db()


# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(reactivation.router, prefix="/api/v1")
app.include_router(password_reset.router, prefix="/api/v1")
app.include_router(account.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/healthz")
def healthz():
    return {"ok": True}
