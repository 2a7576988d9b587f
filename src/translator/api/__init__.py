"""HTTP routers of the translation assistant."""

from translator.api.settings import router as settings_router
from translator.api.sidebars import router as sidebars_router

__all__ = ["settings_router", "sidebars_router"]
