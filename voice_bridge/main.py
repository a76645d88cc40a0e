# voice_bridge/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voice_bridge.api.calls import router as calls_router
from voice_bridge.api.webhooks import router as webhooks_router
from voice_bridge.config import get_settings
from voice_bridge.core.call_flows import load_call_flows, set_call_flows
from voice_bridge.db.db import connect_db, disconnect_db
from voice_bridge.utils.logging import DEFAULT_FORMAT

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=DEFAULT_FORMAT)
logger = logging.getLogger("voice-bridge")

app = FastAPI(
    title="Voice Bridge",
    version="0.1.0",
    description="Telephony voice callback bridge: call-flow selection, provider XML, call activity logging",
)

# CORS - relaxed for dev
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ENV == "dev" else [],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhooks_router, prefix="/webhook", tags=["webhook"])
app.include_router(calls_router, prefix="/api", tags=["calls"])


# Simple health endpoints
@app.get("/", tags=["health"])
async def root():
    return JSONResponse({"status": "ok", "service": "voice-bridge", "env": settings.ENV})


@app.get("/health", tags=["health"])
async def health():
    return JSONResponse({"status": "ok", "db": bool(getattr(app.state, "db_connected", False))})


@app.on_event("startup")
async def on_startup():
    logger.info("Starting Voice Bridge (env=%s)", settings.ENV)
    # a bad flow table must stop the process here rather than fail calls later
    flows = load_call_flows(settings)
    set_call_flows(flows)
    logger.info("Call flows ready: %s", ", ".join(sorted(flows)))

    await connect_db(settings.DB_URL)
    app.state.db_connected = True
    logger.info("Database connected")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Shutting down Voice Bridge")
    await disconnect_db()
    app.state.db_connected = False


# If run directly: start uvicorn programmatically (handy for `python -m voice_bridge.main`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "voice_bridge.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.ENV == "dev",
        log_level=settings.LOG_LEVEL,
    )
