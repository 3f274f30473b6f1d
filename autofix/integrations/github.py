"""GitHub REST client for the pull-request operations the pipeline needs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol

import requests

from autofix.errors import GitHubApiError
from autofix.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LABELS = ("autofix", "experimental")
_API_VERSION = "2022-11-28"
_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class PullRequest:
    number: int
    html_url: str = ""
    created: bool = False


class PullRequestClient(Protocol):
    """Operations used by :func:`upsert_pull_request`."""

    def list_open_pulls(self, head: str) -> list[dict[str, Any]]:
        ...

    def create_pull(self, *, title: str, head: str, base: str, body: str, draft: bool = True) -> dict[str, Any]:
        ...

    def update_pull(self, number: int, *, title: str, base: str, body: str) -> dict[str, Any]:
        ...

    def add_labels(self, issue_number: int, labels: Iterable[str]) -> list[dict[str, Any]]:
        ...


class GitHubClient:
    """Minimal REST client scoped to one repository."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        api_url: str = "https://api.github.com",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": _API_VERSION,
                "User-Agent": "rollbar-autofix",
            }
        )

    def _endpoint(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        endpoint = self._endpoint(path)
        try:
            response = self._session.request(
                method,
                f"{self.api_url}{endpoint}",
                timeout=_TIMEOUT_SECONDS,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise GitHubApiError(method, endpoint, 0, str(exc)) from exc

        if response.status_code >= 400:
            detail = ""
            try:
                payload = response.json()
            except ValueError:
                detail = (response.text or "").strip()
            else:
                if isinstance(payload, dict):
                    detail = str(payload.get("message") or "")
            raise GitHubApiError(method, endpoint, response.status_code, detail)

        if not response.content:
            return None
        return response.json()

    def list_open_pulls(self, head: str) -> list[dict[str, Any]]:
        return self._request("GET", "pulls", params={"state": "open", "head": head}) or []

    def create_pull(
        self, *, title: str, head: str, base: str, body: str, draft: bool = True
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "pulls",
            json={"title": title, "head": head, "base": base, "body": body, "draft": draft},
        )

    def update_pull(self, number: int, *, title: str, base: str, body: str) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"pulls/{number}",
            json={"title": title, "base": base, "body": body},
        )

    def add_labels(self, issue_number: int, labels: Iterable[str]) -> list[dict[str, Any]]:
        return self._request(
            "POST",
            f"issues/{issue_number}/labels",
            json={"labels": list(labels)},
        ) or []


def upsert_pull_request(
    client: PullRequestClient,
    *,
    owner: str,
    branch: str,
    base: str,
    title: str,
    body: str,
    labels: Iterable[str] = DEFAULT_LABELS,
) -> PullRequest:
    """Update the open pull request for ``branch`` or open a new draft one.

    Updates only touch title, base and body; head and draft state are set on
    creation. Labels are applied in both cases.
    """

    label_list = list(labels)
    existing = client.list_open_pulls(f"{owner}:{branch}")
    if existing:
        number = int(existing[0]["number"])
        updated = client.update_pull(number, title=title, base=base, body=body) or {}
        client.add_labels(number, label_list)
        logger.info("Updated existing pull request #%s.", number)
        return PullRequest(number=number, html_url=str(updated.get("html_url") or existing[0].get("html_url") or ""))

    created = client.create_pull(title=title, head=branch, base=base, body=body, draft=True)
    number = int(created["number"])
    client.add_labels(number, label_list)
    logger.info("Created pull request #%s.", number)
    return PullRequest(number=number, html_url=str(created.get("html_url") or ""), created=True)


__all__ = [
    "DEFAULT_LABELS",
    "GitHubClient",
    "PullRequest",
    "PullRequestClient",
    "upsert_pull_request",
]
