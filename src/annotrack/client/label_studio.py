"""HTTP client for the annotation tool (Label Studio) REST API."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import requests

from annotrack.config import Settings, get_settings
from annotrack.exceptions import UpstreamAPIError

logger = logging.getLogger(__name__)


class PagedSequence:
    """Lazy, restartable sequence over a paginated listing.

    Every iteration starts again from page 1, so the same instance can be
    walked more than once. Paging stops when the server signals the end:

    - a {"results": [...]} page without a "next" cursor
    - an empty page
    - a payload that is a single object rather than a list
    - HTTP 404 on any page after the first
    """

    def __init__(self, fetch_page: Callable[[int], Any], label: str) -> None:
        """Initialize the sequence.

        Args:
            fetch_page: Returns the decoded JSON payload of a 1-based page.
                Raises UpstreamAPIError on failure.
            label: Name used in log messages
        """
        self._fetch_page = fetch_page
        self.label = label

    def __iter__(self) -> Iterator[dict[str, Any]]:
        page = 1
        total = 0
        while True:
            try:
                data = self._fetch_page(page)
            except UpstreamAPIError as e:
                if page > 1 and e.status_code == 404:
                    logger.debug(f"[{self.label}] Page {page} is 404, end of list")
                    break
                raise

            if isinstance(data, dict) and "results" in data:
                items = data.get("results") or []
                last_page = not data.get("next")
            elif isinstance(data, list):
                items = data
                last_page = False
            else:
                items = [data] if data else []
                last_page = True

            if not items:
                break

            total += len(items)
            yield from items

            if last_page:
                break
            page += 1

        logger.debug(f"[{self.label}] Completed, {total} item(s)")

    def to_list(self) -> list[dict[str, Any]]:
        """Fetch every page and return the items as a list."""
        return list(self)


class LabelStudioClient:
    """HTTP client for listing projects and their tasks."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        projects_page_size: int = 50,
        tasks_page_size: int = 100,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the annotation tool (e.g., "https://labels.example.com")
            api_key: API token
            timeout: Timeout of each request in seconds
            verify_ssl: Verify TLS certificates
            projects_page_size: Page size for project listings
            tasks_page_size: Page size for task listings
            session: Session to use instead of a new one
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.projects_page_size = projects_page_size
        self.tasks_page_size = tasks_page_size

        self.session = session or requests.Session()
        self.session.verify = verify_ssl
        self.session.headers.update({"Authorization": f"Token {api_key}", "Content-Type": "application/json"})

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> LabelStudioClient:
        """Create a client from runtime settings."""
        settings = settings or get_settings()
        return cls(
            base_url=settings.label_studio_url,
            api_key=settings.label_studio_api_key,
            timeout=settings.request_timeout,
            verify_ssl=settings.verify_ssl,
            projects_page_size=settings.projects_page_size,
            tasks_page_size=settings.tasks_page_size,
        )

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise UpstreamAPIError(f"Request to {path} failed: {e}", status_code=status_code) from e
        except (requests.RequestException, ValueError) as e:
            raise UpstreamAPIError(f"Request to {path} failed: {e}") from e

    def list_projects(self) -> PagedSequence:
        """List all projects as {id, title, ...} records."""
        return PagedSequence(
            lambda page: self._get("/api/projects", {"page": page, "page_size": self.projects_page_size}),
            label="Projects",
        )

    def list_project_tasks(self, project_id: int | str) -> PagedSequence:
        """List all tasks of a project, with their annotations."""
        return PagedSequence(
            lambda page: self._get(f"/api/projects/{project_id}/tasks", {"page": page, "page_size": self.tasks_page_size}),
            label=f"Project {project_id}",
        )

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
