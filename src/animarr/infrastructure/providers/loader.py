from __future__ import annotations

import importlib.util
import traceback
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog

from animarr.domain.entities import ProviderLoadError
from animarr.domain.ports import ScraperAdapterPort

log = structlog.get_logger(__name__)

_REQUIRED_METHODS = ("listing", "detail", "episode_sources", "episode_url")


def _import_module_from_path(path: Path) -> ModuleType:
    module_name = f"animarr_dynamic_provider_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, str(path))
    if spec is None or spec.loader is None:
        raise ProviderLoadError(f"Could not create import spec for {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)  # type: ignore[union-attr]
    except SyntaxError as e:
        tb = traceback.format_exc()
        raise ProviderLoadError(f"SyntaxError while importing {path}:\n{tb}") from e
    except Exception as e:
        tb = traceback.format_exc()
        raise ProviderLoadError(f"Error while importing {path}:\n{tb}") from e

    return module


def validate_provider(provider: Any) -> ScraperAdapterPort:
    """Check that ``provider`` satisfies the scraper adapter contract."""
    for method in _REQUIRED_METHODS:
        if not callable(getattr(provider, method, None)):
            raise ProviderLoadError(f"Provider must have '{method}' method")
    name = getattr(provider, "name", None)
    if not isinstance(name, str) or not name:
        raise ProviderLoadError("Provider must have non-empty 'name' attribute")
    return provider


def load_python_provider(path: Path) -> ScraperAdapterPort:
    try:
        module = _import_module_from_path(path)
        if not hasattr(module, "plugin"):
            raise ProviderLoadError("Provider module must export 'plugin' variable")
        return validate_provider(getattr(module, "plugin"))
    except ProviderLoadError as e:
        log.error(
            "provider_load_failed",
            provider_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise
