"""Provider registry with lazy loading and in-memory caching."""

from __future__ import annotations

from pathlib import Path

import structlog

from animarr.domain.entities import (
    DuplicateProviderError,
    ProviderLoadError,
    ProviderNotFoundError,
)
from animarr.domain.ports import ScraperAdapterPort

from .loader import load_python_provider, validate_provider

log = structlog.get_logger(__name__)


class ProviderRegistry:
    """
    Lazy-loading registry of scraper adapters.

    discover():
      - indexes ``*.py`` files only (no Python execution)

    get()/load_all()/list_names():
      - import on demand and cache by provider name

    ``register()`` adds an in-process adapter without a plugin file.
    """

    def __init__(self, plugin_dir: Path | None = None) -> None:
        self._plugin_dir = plugin_dir
        self._discovered: bool = False
        self._paths: list[Path] = []
        self._loaded: dict[str, ScraperAdapterPort] = {}
        self._path_names: dict[Path, str] = {}
        self._failed: set[Path] = set()

    @property
    def plugin_dir(self) -> Path | None:
        return self._plugin_dir

    def register(self, provider: ScraperAdapterPort) -> None:
        provider = validate_provider(provider)
        if provider.name in self._loaded:
            raise DuplicateProviderError(
                f"Provider name '{provider.name}' already exists"
            )
        self._loaded[provider.name] = provider
        log.info("provider_registered", provider=provider.name)

    def discover(self) -> None:
        if self._discovered:
            return

        self._discovered = True
        self._paths = []

        if self._plugin_dir is None:
            return
        if not self._plugin_dir.is_dir():
            log.warning("provider_directory_not_found", directory=str(self._plugin_dir))
            return

        for path in sorted(self._plugin_dir.iterdir(), key=lambda p: p.name):
            if (
                path.is_file()
                and path.suffix.lower() == ".py"
                and not path.name.startswith("_")
            ):
                self._paths.append(path)

        log.info(
            "providers_discovered",
            count=len(self._paths),
            directory=str(self._plugin_dir),
        )
        if not self._paths:
            log.warning("no_providers_found", directory=str(self._plugin_dir))

    def list_names(self) -> list[str]:
        return sorted(p.name for p in self.load_all())

    def get(self, name: str) -> ScraperAdapterPort:
        if name not in self._loaded:
            self.load_all()
        try:
            return self._loaded[name]
        except KeyError:
            raise ProviderNotFoundError(f"Provider '{name}' not found") from None

    def load_all(self) -> list[ScraperAdapterPort]:
        """Import every discovered plugin file once.

        Files that fail to import are logged and skipped. Two files that
        resolve to the same provider name raise ``DuplicateProviderError``.
        """
        self.discover()

        for path in self._paths:
            if path in self._path_names or path in self._failed:
                continue
            try:
                provider = load_python_provider(path)
            except ProviderLoadError:
                self._failed.add(path)
                continue
            if provider.name in self._loaded:
                raise DuplicateProviderError(
                    f"Provider name '{provider.name}' already exists ({path.name})"
                )
            self._loaded[provider.name] = provider
            self._path_names[path] = provider.name
            log.info("provider_loaded", provider=provider.name, file=path.name)

        return [self._loaded[name] for name in sorted(self._loaded)]

    async def cleanup(self) -> None:
        for provider in self._loaded.values():
            cleanup_fn = getattr(provider, "cleanup", None)
            if cleanup_fn is not None:
                await cleanup_fn()
