import logging
import os

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from translator.api import settings_router, sidebars_router
from translator.logging_config import configure_logging
from translator.services.suggestions import SuggestionService, get_suggestion_service
from translator.telemetry import emit_app_startup_event

configure_logging(
    level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("TRANSLATOR_LOG_DIR", "logs"),
)

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Translation Assistant API")
app.include_router(settings_router)
app.include_router(sidebars_router)


@app.on_event("startup")
async def _startup() -> None:
    emit_app_startup_event()


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz")
def healthcheck(service: SuggestionService = Depends(get_suggestion_service)) -> dict[str, object]:
    """Report the completion source in use and whether the vault is reachable."""

    if not service.vault.root.is_dir():
        raise HTTPException(status_code=503, detail=f"Vault directory not found: {service.vault.root}")

    settings = service.settings_store.settings
    return {
        "status": "ok",
        "completion_source": service.completion_source.name,
        "vault": str(service.vault.root),
        "source_file_path": settings.source_file_path,
        "has_api_key": bool(settings.resolve_credential()),
    }
