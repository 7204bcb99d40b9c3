"""
Operator settings API — reasoning credential and live/fallback toggle.

The credential is write-only: reads report whether one is set, never its value.
"""

import logging

from fastapi import APIRouter, Depends

from dresscode.api.deps import get_runtime_settings, require_admin
from dresscode.schemas.schemas import MessageResponse, SettingsUpdate, SettingsView
from dresscode.services.runtime_settings import RuntimeSettingsStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"], dependencies=[Depends(require_admin)])


@router.get("", response_model=SettingsView, response_model_by_alias=True)
async def get_settings(runtime: RuntimeSettingsStore = Depends(get_runtime_settings)):
    config = runtime.current()
    return SettingsView(
        apiKey="*****" if config.has_credential else "",
        hasCredential=config.has_credential,
        useFallback=config.use_fallback,
    )


@router.post("", response_model=MessageResponse)
async def update_settings(
    body: SettingsUpdate,
    runtime: RuntimeSettingsStore = Depends(get_runtime_settings),
):
    runtime.update(api_key=body.api_key, use_fallback=body.use_fallback)
    return MessageResponse(message="Settings updated successfully")
