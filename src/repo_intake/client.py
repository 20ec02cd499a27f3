"""Async GitHub REST client for pull requests, issues and repository contents.

Each method issues exactly one HTTP request and raises on a non-success
status. Retrying is the caller's concern (see ``repo_intake.governor``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
import structlog

from repo_intake import __version__
from repo_intake.exceptions import UpstreamPayloadError, UpstreamStatusError
from repo_intake.models import DEFAULT_API_BASE_URL

if TYPE_CHECKING:
    from types import TracebackType

    from repo_intake.models import FetchOptions, RepositoryRef

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_DEFAULT_TIMEOUT = 30.0
_ACCEPT = "application/vnd.github+json"


class GitHubRestClient:
    """Thin wrapper over ``httpx.AsyncClient`` bound to one repository."""

    def __init__(
        self,
        repository: RepositoryRef,
        *,
        access_token: str | None = None,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.repository = repository
        self._base = api_base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

        self._headers = {
            "Accept": _ACCEPT,
            "User-Agent": f"repo-intake/{__version__}",
        }
        if access_token:
            self._headers["Authorization"] = f"Bearer {access_token}"

    @classmethod
    def from_options(
        cls,
        repository: RepositoryRef,
        options: FetchOptions,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> GitHubRestClient:
        token = options.access_token.get_secret_value() if options.access_token else None
        return cls(
            repository,
            access_token=token,
            api_base_url=options.api_base_url,
            timeout=timeout,
            client=client,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GitHubRestClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def _repo_url(self) -> str:
        return f"{self._base}/repos/{self.repository.owner}/{self.repository.name}"

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def list_pull_requests(
        self, state: str, per_page: int, page: int
    ) -> list[dict[str, Any]]:
        response = await self._get(
            f"{self._repo_url}/pulls",
            params={"state": state, "per_page": per_page, "page": page},
            resource="pull requests",
        )
        return _expect_list(response.json(), "pull requests")

    async def list_issues(
        self, state: str, per_page: int, page: int
    ) -> list[dict[str, Any]]:
        response = await self._get(
            f"{self._repo_url}/issues",
            params={"state": state, "per_page": per_page, "page": page},
            resource="issues",
        )
        return _expect_list(response.json(), "issues")

    async def list_directory(self, path: str, ref: str) -> list[dict[str, Any]]:
        """List the entries of ``path`` on branch ``ref``.

        A path that resolves to a single file yields a one-entry listing.
        """
        response = await self._get(
            f"{self._repo_url}/contents/{quote(path, safe='/')}",
            params={"ref": ref},
            resource="directory contents",
        )
        payload = response.json()
        if isinstance(payload, dict):
            payload = [payload]
        return _expect_list(payload, "directory contents")

    async def download_text(self, url: str) -> str:
        response = await self._get(url, resource="file content")
        return response.text

    async def _get(
        self,
        url: str,
        *,
        resource: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        response = await self._client.get(url, params=params, headers=self._headers)
        logger.debug(
            "github_request",
            url=str(response.request.url),
            status_code=response.status_code,
        )
        if not response.is_success:
            raise UpstreamStatusError(
                resource, response.status_code, response.reason_phrase
            )
        return response


def _expect_list(payload: Any, resource: str) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        msg = f"Expected a JSON array of {resource}, got {type(payload).__name__}"
        raise UpstreamPayloadError(msg)
    for position, item in enumerate(payload):
        if not isinstance(item, dict):
            msg = (
                f"Expected {resource} entries to be JSON objects, "
                f"got {type(item).__name__} at position {position}"
            )
            raise UpstreamPayloadError(msg)
    return payload
