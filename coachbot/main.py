from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from coachbot.api.routes import router
from coachbot.api.admin_routes import router as admin_router
from coachbot.observability.logging import log
from coachbot.settings import settings

app = FastAPI(title="Coachbot WhatsApp API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok", "service": "coachbot", "timezone": settings.SCHEDULE_TIMEZONE}


# ---------------------------------------------------------------------------
# The provider treats any non-200 from the webhook as a delivery failure and
# retries, so the webhook acknowledges even unexpected errors. Admin callers
# get a plain 500.
# ---------------------------------------------------------------------------
@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(
        event="unhandled_exception",
        path=request.url.path,
        errorType=type(exc).__name__,
        error=str(exc)[:500],
    )
    if request.url.path == "/webhook-reply":
        return JSONResponse(status_code=200, content={"status": "error", "result": "error"})
    return JSONResponse(status_code=500, content={"detail": "Internal error"})
