"""
FastAPI web service for Kohonen SOM with observability
"""

import io
import json
import os
import time
import structlog
from typing import List, Optional, Dict

import numpy as np
import pandas as pd
from fastapi import FastAPI, HTTPException, UploadFile, File, Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import BaseModel, Field
import uvicorn

from kohonen import (
    SomTrainer,
    TrainerConfig,
    ColorChannel,
    SOMError,
    setup_logging,
    trace_operation,
    get_metrics,
    get_health_status,
    log_training_metrics,
    RequestTracingMiddleware,
    __version__,
)
from kohonen.observability import log_request_metrics, CONTENT_TYPE_LATEST
from kohonen.visualization import SOMVisualizer


# Pydantic models for API requests/responses
class TrainerConfigRequest(BaseModel):
    """Map and training parameters"""

    width: int = Field(default=5, ge=1, le=200)
    height: int = Field(default=5, ge=1, le=200)
    epochs: int = Field(default=20, ge=1, le=1000)
    seed: Optional[int] = Field(default=None, ge=0)


class TrainingRequest(BaseModel):
    """Request to train a SOM"""

    data: List[List[float]] = Field(description="Training data as list of rows")
    config: TrainerConfigRequest = Field(default_factory=TrainerConfigRequest)


class HeatmapRequest(TrainingRequest):
    """Request to train a SOM and render its node counts"""

    channel: ColorChannel = ColorChannel.RED


class TrainingResponse(BaseModel):
    """Per-observation assignments from a trained SOM"""

    nodes: List[int]
    distances: List[float]
    node_counts: List[int]
    quantization_error: float
    zero_variance: bool
    iterations_completed: int
    early_stopped: bool
    message: str


# Initialize observability
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    json_format=os.getenv("LOG_FORMAT", "json").lower() == "json",
)

logger = structlog.get_logger()

app = FastAPI(
    title="Kohonen SOM API",
    description="Train self-organizing maps and read node assignments",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        correlation_id = request.scope.get("correlation_id", "unknown")

        response = await call_next(request)

        duration = time.time() - start_time
        log_request_metrics(
            method=request.method,
            endpoint=request.url.path,
            status_code=response.status_code,
            duration=duration,
        )
        logger.info(
            "HTTP request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            duration_seconds=duration,
            correlation_id=correlation_id,
        )
        return response


# Added last so it runs first and the correlation ID is set for MetricsMiddleware
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestTracingMiddleware)


def _train(request: TrainingRequest) -> SomTrainer:
    """Train a SOM for a request, mapping validation errors to 400"""
    if not request.data:
        raise HTTPException(status_code=400, detail="Empty data provided")

    cfg = request.config
    with trace_operation(
        "som_training",
        width=cfg.width,
        height=cfg.height,
        data_shape=f"{len(request.data)}x{len(request.data[0])}",
    ):
        try:
            start_time = time.time()
            som = SomTrainer(
                request.data,
                cfg.width,
                cfg.height,
                cfg.epochs,
                config=TrainerConfig(**cfg.model_dump()),
            )
            som.train()
            log_training_metrics(som, time.time() - start_time)
        except (SOMError, ValueError) as e:
            logger.error("Training failed - invalid data", error=str(e))
            raise HTTPException(status_code=400, detail=f"Invalid data: {e}")
        except Exception as e:
            logger.error("Training failed - unexpected error", error=str(e))
            raise HTTPException(status_code=500, detail=f"Training failed: {e}")

    return som


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint"""
    return {"message": "Kohonen SOM API", "version": __version__, "docs": "/docs"}


@app.get("/health")
async def health_check():
    """Health check with system status"""
    health_status = get_health_status()
    health_status["version"] = __version__
    logger.info("Health check requested", status=health_status["status"])
    return health_status


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


@app.post("/train", response_model=TrainingResponse)
def train_som(request: TrainingRequest):
    """Train a SOM and return the node and residual of every observation"""
    som = _train(request)
    return TrainingResponse(
        nodes=som.get_nodes().tolist(),
        distances=som.get_distances().tolist(),
        node_counts=som.get_node_counts().tolist(),
        quantization_error=som.quantization_error(),
        zero_variance=not som.metadata["standardized"],
        iterations_completed=som.metadata["iterations_completed"],
        early_stopped=som.metadata["early_stopped"],
        message=f"SOM trained with {som.grid.row_count} samples",
    )


@app.post("/heatmap")
def heatmap(request: HeatmapRequest):
    """Train a SOM and return its node count heatmap as PNG"""
    som = _train(request)
    png = SOMVisualizer.node_counts_png(som, request.channel)
    return Response(content=png, media_type="image/png")


@app.post("/upload")
async def upload_data(file: UploadFile = File(...)):
    """Parse an uploaded CSV or JSON file and describe its contents"""
    content = await file.read()
    filename = file.filename or ""

    try:
        if filename.endswith(".json"):
            data_array = np.array(json.loads(content.decode("utf-8")), dtype=np.float64)
        elif filename.endswith(".csv"):
            df = pd.read_csv(io.StringIO(content.decode("utf-8")), index_col=False)
            data_array = df.select_dtypes(include=[np.number]).to_numpy(dtype=np.float64)
        else:
            raise HTTPException(
                status_code=400, detail="Unsupported file format. Use CSV or JSON."
            )
    except (ValueError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Failed to parse file: {e}")

    if data_array.ndim != 2:
        raise HTTPException(status_code=400, detail="Data must be 2-dimensional")

    return {
        "filename": filename,
        "shape": list(data_array.shape),
        "data_preview": data_array[:5].tolist(),
        "message": (
            f"Data loaded successfully: {data_array.shape[0]} samples, "
            f"{data_array.shape[1]} features"
        ),
    }


def main():
    """Run the FastAPI server"""
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("api:app", host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    main()
