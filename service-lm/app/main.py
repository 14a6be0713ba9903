"""LM service main application."""

import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
import structlog

from .api.routes import router as api_router
from .runtime.metrics import get_metrics_collector
from libs.common.config import LMConfig
from libs.common.logging import configure_logging
from libs.engine.factory import create_engine_from_config
from libs.lifecycle import ModelLifecycleManager, ModelState

logger = structlog.get_logger("lm_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    config = LMConfig()
    configure_logging("lm-service", config.ml_log_level, config.ml_log_format)
    app.state.config = config
    app.state.startup_time = time.time()

    logger.info("Starting LM service", backend=config.ml_lm_backend, model=config.ml_lm_model)

    app.state.metrics_collector = get_metrics_collector("lm-service")
    engine = create_engine_from_config(config)
    app.state.model_manager = ModelLifecycleManager(
        engine, config, metrics=app.state.metrics_collector
    )

    if config.ml_lm_preload:
        result = await app.state.model_manager.initialize()
        if result:
            logger.info("Model preloaded", model=config.ml_lm_model)
        else:
            logger.warning(
                "Model preload failed",
                model=config.ml_lm_model,
                failure=result.failure.value,
                error=result.error
            )

    logger.info("LM service started successfully")

    yield

    # Shutdown
    logger.info("Shutting down LM service")
    if hasattr(app.state, 'model_manager'):
        await app.state.model_manager.unload()
    logger.info("LM service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="LM Service",
    description="On-device language model lifecycle, embedding and completion service",
    version="0.1.0",
    lifespan=lifespan
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect metrics for HTTP requests."""
    start_time = time.time()

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as e:
        logger.error("Unhandled request error", path=request.url.path, error=str(e))
        status_code = 500
        response = JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(e)}
        )

    duration = time.time() - start_time
    response.headers["X-Process-Time"] = str(duration)

    # Record metrics
    if hasattr(app.state, 'metrics_collector'):
        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status=status_code,
            duration=duration
        )

    return response


@app.get("/health")
async def health_check():
    """Health check endpoint. Unhealthy only when the model is in FAILED state."""
    manager: Optional[ModelLifecycleManager] = getattr(app.state, "model_manager", None)
    if manager is None or manager.state is ModelState.FAILED:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "service": "lm-service",
                "state": manager.state.value if manager else None
            }
        )
    return {"status": "healthy", "service": "lm-service", "state": manager.state.value}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if hasattr(app.state, 'metrics_collector'):
        metrics_data = app.state.metrics_collector.get_metrics()
        return Response(content=metrics_data, media_type="text/plain")
    else:
        return Response(content="# No metrics available\n", media_type="text/plain")


@app.get("/live")
async def liveness():
    """Liveness probe. Returns quickly if process is responsive."""
    return {
        "status": "alive",
        "service": "lm-service",
        "uptime_seconds": time.time() - getattr(app.state, "startup_time", time.time())
    }


@app.get("/ready")
async def readiness():
    """Readiness probe. Ready once the model is loaded."""
    manager: Optional[ModelLifecycleManager] = getattr(app.state, "model_manager", None)
    if manager is None:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "service": "lm-service", "error": "Model manager not initialized"}
        )

    status = await manager.status()
    if not (manager.is_ready and status["engine_loaded"]):
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "service": "lm-service", "state": status["state"]}
        )

    return {"status": "ready", "service": "lm-service", "model": status["model"]}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "lm-service",
        "version": "0.1.0",
        "status": "running",
        "endpoints": {
            "model": "/api/v1/model",
            "download": "/api/v1/model/download",
            "initialize": "/api/v1/model/initialize",
            "unload": "/api/v1/model/unload",
            "embed": "/api/v1/embed",
            "complete": "/api/v1/complete",
            "metrics": "/metrics"
        },
        "probes": {
            "health": "/health",
            "live": "/live",
            "ready": "/ready"
        }
    }


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=LMConfig().ml_lm_port,
        log_level="info"
    )
