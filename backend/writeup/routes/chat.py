"""
WriteUp Backend: Chat Routes
============================

What:  The chat window's API: send a message, read/update the chat config,
       apply presets, and export a conversation as Markdown.
"""

import logging
from typing import List

from fastapi import APIRouter

from writeup.schemas.chat import (
    ChatConfig,
    ChatConfigUpdate,
    ChatExportRequest,
    ChatExportResponse,
    ChatPreset,
    ChatRequest,
    ChatResponse,
)
from writeup.schemas.enhancement import ErrorEnvelope
from writeup.services.chat_service import chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.post(
    "",
    response_model=ChatResponse,
    responses={
        503: {"description": "No provider available or all providers failed", "model": ErrorEnvelope},
    },
    summary="Send a chat message",
)
async def send_message(request: ChatRequest) -> ChatResponse:
    return await chat_service.send_message(request)


@router.get("/config", response_model=ChatConfig, summary="Current chat configuration")
async def get_config() -> ChatConfig:
    return chat_service.get_config()


@router.put("/config", response_model=ChatConfig, summary="Update chat configuration")
async def update_config(update: ChatConfigUpdate) -> ChatConfig:
    return chat_service.update_config(update)


@router.get("/presets", response_model=List[ChatPreset], summary="Available chat presets")
async def list_presets() -> List[ChatPreset]:
    return chat_service.list_presets()


@router.post(
    "/presets/{name}",
    response_model=ChatConfig,
    responses={404: {"description": "Unknown preset", "model": ErrorEnvelope}},
    summary="Apply a chat preset",
)
async def apply_preset(name: str) -> ChatConfig:
    return chat_service.apply_preset(name)


@router.post("/export", response_model=ChatExportResponse, summary="Export a conversation as Markdown")
async def export_conversation(request: ChatExportRequest) -> ChatExportResponse:
    return ChatExportResponse(content=chat_service.export_conversation(request.messages))
