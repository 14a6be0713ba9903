"""API routes for the LM service."""

import time
from typing import Any, Dict, List
from fastapi import APIRouter, HTTPException, Request, Depends
from pydantic import BaseModel, Field
import structlog

from libs.engine.base import ChatMessage
from libs.lifecycle import ModelLifecycleManager, OperationResult

logger = structlog.get_logger("lm_service.api")

router = APIRouter()


class ModelStatusResponse(BaseModel):
    """Current lifecycle status of the served model."""
    model: str = Field(..., description="Model slug")
    state: str = Field(..., description="Lifecycle state")
    downloaded: bool = Field(..., description="Whether the weights are present locally")
    engine_loaded: bool = Field(..., description="Whether the engine reports the model loaded")


class LifecycleResponse(BaseModel):
    """Response model for download/initialize/unload."""
    model: str = Field(..., description="Model slug")
    success: bool = Field(..., description="Whether the operation succeeded")
    state: str = Field(..., description="Lifecycle state after the operation")


class EmbedRequest(BaseModel):
    """Request model for embedding endpoint."""
    text: str = Field(..., description="Text to embed")


class EmbedResponse(BaseModel):
    """Response model for embedding endpoint."""
    model: str = Field(..., description="Model slug")
    vector: List[float] = Field(..., description="Embedding vector (float32 values)")
    dimension: int = Field(..., description="Vector length")
    latency_ms: float = Field(..., description="Processing latency in milliseconds")


class ChatMessageModel(BaseModel):
    """A single chat turn."""
    role: str = Field(..., description="Speaker role, e.g. system, user, assistant")
    content: str = Field(..., description="Message text")


class CompleteRequest(BaseModel):
    """Request model for completion endpoint."""
    messages: List[ChatMessageModel] = Field(..., description="Conversation so far")


class CompleteResponse(BaseModel):
    """Response model for completion endpoint."""
    model: str = Field(..., description="Model slug")
    response: str = Field(..., description="Generated reply")
    latency_ms: float = Field(..., description="Processing latency in milliseconds")


def get_model_manager(request: Request) -> ModelLifecycleManager:
    """Get lifecycle manager from application state."""
    return request.app.state.model_manager


def raise_for_failure(result: OperationResult, action: str) -> None:
    """Map a failed ``OperationResult`` to HTTP 503 carrying the failure kind."""
    if result:
        return
    detail: Dict[str, Any] = {
        "message": f"{action} failed",
        "failure": result.failure.value,
        "error": result.error,
    }
    raise HTTPException(status_code=503, detail=detail)


@router.get("/model", response_model=ModelStatusResponse)
async def model_status(
    manager: ModelLifecycleManager = Depends(get_model_manager)
):
    """Report the lifecycle state of the served model."""
    status = await manager.status()
    downloaded = await manager.is_downloaded()
    return ModelStatusResponse(
        model=status["model"],
        state=status["state"],
        downloaded=downloaded,
        engine_loaded=status["engine_loaded"],
    )


@router.post("/model/download", response_model=LifecycleResponse)
async def download_model(
    manager: ModelLifecycleManager = Depends(get_model_manager)
):
    """Download the model weights if they are not present."""
    result = await manager.download()
    raise_for_failure(result, "Model download")
    logger.info("Model download requested", model=manager.model_id)
    return LifecycleResponse(model=manager.model_id, success=True, state=manager.state.value)


@router.post("/model/initialize", response_model=LifecycleResponse)
async def initialize_model(
    manager: ModelLifecycleManager = Depends(get_model_manager)
):
    """Download (if needed) and load the model."""
    result = await manager.initialize()
    raise_for_failure(result, "Model initialization")
    logger.info("Model initialization requested", model=manager.model_id)
    return LifecycleResponse(model=manager.model_id, success=True, state=manager.state.value)


@router.post("/model/unload", response_model=LifecycleResponse)
async def unload_model(
    manager: ModelLifecycleManager = Depends(get_model_manager)
):
    """Release the model from memory."""
    result = await manager.unload()
    raise_for_failure(result, "Model unload")
    logger.info("Model unload requested", model=manager.model_id)
    return LifecycleResponse(model=manager.model_id, success=True, state=manager.state.value)


@router.post("/embed", response_model=EmbedResponse)
async def embed(
    request: EmbedRequest,
    manager: ModelLifecycleManager = Depends(get_model_manager)
):
    """Generate an embedding for the given text."""
    start_time = time.time()

    result = await manager.generate_embedding(request.text)
    raise_for_failure(result, "Embedding generation")

    latency_ms = (time.time() - start_time) * 1000
    vector = result.value.tolist()

    logger.info(
        "Embedding generated",
        model=manager.model_id,
        dimension=len(vector),
        latency_ms=latency_ms
    )

    return EmbedResponse(
        model=manager.model_id,
        vector=vector,
        dimension=len(vector),
        latency_ms=latency_ms
    )


@router.post("/complete", response_model=CompleteResponse)
async def complete(
    request: CompleteRequest,
    manager: ModelLifecycleManager = Depends(get_model_manager)
):
    """Generate a reply to a chat history."""
    start_time = time.time()

    messages = [ChatMessage(role=m.role, content=m.content) for m in request.messages]
    result = await manager.generate_completion(messages)
    raise_for_failure(result, "Completion")

    latency_ms = (time.time() - start_time) * 1000
    logger.info(
        "Completion generated",
        model=manager.model_id,
        message_count=len(messages),
        latency_ms=latency_ms
    )

    return CompleteResponse(
        model=manager.model_id,
        response=result.value,
        latency_ms=latency_ms
    )
