"""API router exposing the persisted settings and the vault listing."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from translator.config import TranslatorSettings
from translator.services.suggestions import SuggestionService, get_suggestion_service

router = APIRouter(tags=["settings"])


class SettingsResponse(BaseModel):
    """Settings as shown to the user; the API key itself is never returned."""

    source_file_path: Optional[str]
    has_api_key: bool


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields are left unchanged."""

    anthropic_api_key: Optional[str] = Field(None, description="Anthropic API key.")
    source_file_path: Optional[str] = Field(
        None, description="Vault-relative path of the source document. Empty string clears it."
    )


class DocumentsResponse(BaseModel):
    documents: list[str]


def _serialise_settings(settings: TranslatorSettings) -> SettingsResponse:
    return SettingsResponse(
        source_file_path=settings.source_file_path,
        has_api_key=bool(settings.resolve_credential()),
    )


@router.get("/settings", response_model=SettingsResponse)
def read_settings(service: SuggestionService = Depends(get_suggestion_service)) -> SettingsResponse:
    return _serialise_settings(service.settings_store.settings)


@router.put("/settings", response_model=SettingsResponse)
def update_settings(
    body: SettingsUpdate,
    service: SuggestionService = Depends(get_suggestion_service),
) -> SettingsResponse:
    """Apply the provided fields and persist them straight away."""

    changes = body.model_dump(exclude_unset=True)
    try:
        settings = service.settings_store.update(**changes)
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except OSError as exc:
        raise HTTPException(status_code=500, detail=f"Unable to save settings: {exc}") from exc
    return _serialise_settings(settings)


@router.get("/documents", response_model=DocumentsResponse)
def list_documents(service: SuggestionService = Depends(get_suggestion_service)) -> DocumentsResponse:
    """Candidate source documents, sorted by path."""

    return DocumentsResponse(documents=service.vault.list_documents())
