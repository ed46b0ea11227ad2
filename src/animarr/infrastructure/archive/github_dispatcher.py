"""GitHub ``repository_dispatch`` notifier for the archive worker."""

from __future__ import annotations

import httpx
import structlog

log = structlog.get_logger(__name__)

_API_BASE = "https://api.github.com"


class GithubDispatcher:
    """Implements ``ArchiveDispatcherPort``.

    Sends ``POST /repos/{owner}/{repo}/dispatches`` with the configured
    ``event_type``. GitHub answers 204 on success.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        owner: str,
        repo: str,
        token: str,
        event_type: str = "process_queue",
        api_base: str = _API_BASE,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._http = http_client
        self._url = f"{api_base.rstrip('/')}/repos/{owner}/{repo}/dispatches"
        self._token = token
        self._event_type = event_type
        self._timeout = timeout_seconds

    async def dispatch(self, payload: dict[str, object] | None = None) -> bool:
        body: dict[str, object] = {"event_type": self._event_type}
        if payload:
            body["client_payload"] = payload
        try:
            resp = await self._http.post(
                self._url,
                json=body,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            log.warning("archive_dispatch_failed", url=self._url, error=str(exc))
            return False

        if resp.status_code >= 400:
            log.warning(
                "archive_dispatch_rejected",
                url=self._url,
                status=resp.status_code,
            )
            return False

        log.info("archive_dispatched", event_type=self._event_type)
        return True
