# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Project hub collaborator: catalog fork listing and seal posting."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Protocol

import requests
from pydantic import ValidationError

from .errors import HubError
from .logging import ConsoleLogger, default_logger
from .models.hub import HubFork, HubForkPage
from .models.seal import FairSeal

DEFAULT_ENDPOINT: Final[str] = "https://api.github.com/graphql"
FORKS_PER_PAGE: Final[int] = 10

FORKS_QUERY: Final[str] = """
query CatalogForks($owner: String!, $name: String!, $count: Int!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    forks(after: $cursor, first: $count, isLocked: false, privacy: PUBLIC,
          orderBy: {field: PUSHED_AT, direction: DESC}) {
      pageInfo { endCursor hasNextPage }
      nodes {
        name
        nameWithOwner
        owner { login ... on Organization { email isVerified websiteUrl } }
        description
        homepageUrl
        forkCount
        stargazerCount
        pushedAt
        issues { totalCount }
        watchers { totalCount }
        fundingLinks { platform url }
        repositoryTopics(first: 10) { nodes { topic { name } } }
        releases(first: 10, orderBy: {field: CREATED_AT, direction: DESC}) {
          nodes {
            name
            createdAt
            isPrerelease
            isDraft
            description
            tag { name }
            tagCommit { author { name email } }
            releaseAssets(first: 25) { nodes { name size downloadCount downloadUrl } }
          }
        }
        defaultBranchRef {
          associatedPullRequests(states: [OPEN, CLOSED], last: 10) {
            nodes { comments(first: 10) { nodes { author { login } bodyText } } }
          }
        }
      }
    }
  }
}
"""

OPEN_PULL_REQUESTS_QUERY: Final[str] = """
query OpenPullRequests($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    pullRequests(states: [OPEN], last: 100) {
      nodes { id headRepository { nameWithOwner } }
    }
  }
}
"""

ADD_COMMENT_MUTATION: Final[str] = """
mutation AddComment($subjectId: ID!, $body: String!) {
  addComment(input: {subjectId: $subjectId, body: $body}) {
    commentEdge { node { url } }
  }
}
"""


class HubClient(Protocol):
    """Operations catalog assembly and sealing need from the project hub."""

    def fork_pages(
        self,
        owner: str,
        base_repository: str,
        *,
        request_limit: int | None = None,
    ) -> Iterator[HubForkPage]:
        """Yield pages of forks of ``owner/base_repository``."""

    def post_fairseal(self, seal: FairSeal, *, owner: str, base_repository: str) -> str | None:
        """Post ``seal`` to the open pull request of its app, returning the comment URL."""


def _nodes(container: Any) -> list[Any]:
    if isinstance(container, Mapping):
        nodes = container.get("nodes")
        if isinstance(nodes, list):
            return [node for node in nodes if node is not None]
    return []


def _count(container: Any) -> int:
    if isinstance(container, Mapping):
        value = container.get("totalCount")
        if isinstance(value, int):
            return value
    return 0


def fork_from_node(node: Mapping[str, Any]) -> HubFork:
    """Flatten a GraphQL fork node into a :class:`HubFork`."""

    releases = []
    for release in _nodes(node.get("releases")):
        tag = release.get("tag") or {}
        commit = release.get("tagCommit") or {}
        releases.append(
            {
                "tagName": tag.get("name") or "",
                "name": release.get("name"),
                "isPrerelease": bool(release.get("isPrerelease")),
                "isDraft": bool(release.get("isDraft")),
                "createdAt": release.get("createdAt"),
                "description": release.get("description"),
                "author": commit.get("author"),
                "assets": _nodes(release.get("releaseAssets")),
            },
        )
    comments = []
    branch = node.get("defaultBranchRef") or {}
    for pull_request in _nodes(branch.get("associatedPullRequests")):
        for comment in _nodes(pull_request.get("comments")):
            author = comment.get("author") or {}
            comments.append({"author": author.get("login"), "body": comment.get("bodyText") or ""})
    return HubFork.model_validate(
        {
            "name": node.get("name"),
            "nameWithOwner": node.get("nameWithOwner"),
            "owner": node.get("owner"),
            "description": node.get("description"),
            "homepageUrl": node.get("homepageUrl"),
            "stargazerCount": node.get("stargazerCount") or 0,
            "forkCount": node.get("forkCount") or 0,
            "watcherCount": _count(node.get("watchers")),
            "issueCount": _count(node.get("issues")),
            "topics": [
                name
                for topic in _nodes(node.get("repositoryTopics"))
                if isinstance(name := (topic.get("topic") or {}).get("name"), str)
            ],
            "fundingLinks": node.get("fundingLinks") or [],
            "pushedAt": node.get("pushedAt"),
            "releases": releases,
            "comments": comments,
        },
    )


@dataclass(slots=True)
class GitHubHub:
    """:class:`HubClient` backed by the GitHub GraphQL API."""

    token: str | None = None
    endpoint: str = DEFAULT_ENDPOINT
    timeout: float = 60.0
    session: requests.Session = field(default_factory=requests.Session)
    logger: ConsoleLogger = field(default_factory=default_logger)
    requests_sent: int = 0

    def _execute(self, query: str, variables: Mapping[str, Any]) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self.requests_sent += 1
        try:
            response = self.session.post(
                self.endpoint,
                json={"query": query, "variables": dict(variables)},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise HubError(f"Hub request failed: {exc}") from exc
        except ValueError as exc:
            raise HubError(f"Hub returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise HubError("Hub returned an unexpected payload")
        if errors := payload.get("errors"):
            messages = "; ".join(str(item.get("message", item)) for item in errors if isinstance(item, Mapping))
            raise HubError(f"Hub query failed: {messages or errors}")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise HubError("Hub response is missing data")
        return data

    def fork_pages(
        self,
        owner: str,
        base_repository: str,
        *,
        request_limit: int | None = None,
    ) -> Iterator[HubForkPage]:
        """Yield fork pages until exhausted or ``request_limit`` pages were requested.

        Raises:
            HubError: If a request fails or returns an unexpected document.
        """

        cursor: str | None = None
        pages = 0
        while True:
            if request_limit is not None and pages >= request_limit:
                self.logger.warn(f"stopping after {pages} hub requests (request limit)")
                return
            data = self._execute(
                FORKS_QUERY,
                {"owner": owner, "name": base_repository, "count": FORKS_PER_PAGE, "cursor": cursor},
            )
            pages += 1
            forks = ((data.get("repository") or {}).get("forks")) or {}
            page_info = forks.get("pageInfo") or {}
            try:
                page = HubForkPage(
                    forks=[fork_from_node(node) for node in _nodes(forks)],
                    has_next_page=bool(page_info.get("hasNextPage")),
                    end_cursor=page_info.get("endCursor"),
                )
            except ValidationError as exc:
                raise HubError(f"Unexpected fork listing from hub: {exc}") from exc
            self.logger.debug(f"hub page={pages} forks={len(page.forks)}")
            yield page
            if not page.has_next_page or not page.end_cursor:
                return
            cursor = page.end_cursor

    def post_fairseal(self, seal: FairSeal, *, owner: str, base_repository: str) -> str | None:
        """Comment ``seal`` on the open pull request opened from the app's fork.

        Returns:
            str | None: URL of the new comment, ``None`` when no pull request is open.

        Raises:
            HubError: If the seal has no assets or the hub rejects the request.
        """

        app_org = seal.app_org
        if app_org is None:
            raise HubError("Cannot post a fairseal without assets")
        head = f"{app_org}/{base_repository}"
        data = self._execute(OPEN_PULL_REQUESTS_QUERY, {"owner": owner, "name": base_repository})
        pulls = _nodes(((data.get("repository") or {}).get("pullRequests")))
        match = next(
            (pull for pull in pulls if (pull.get("headRepository") or {}).get("nameWithOwner") == head),
            None,
        )
        if match is None:
            self.logger.warn(f"no open pull request from {head}; fairseal not posted")
            return None
        body = f"```\n{seal.to_json()}\n```"
        result = self._execute(ADD_COMMENT_MUTATION, {"subjectId": match["id"], "body": body})
        edge = ((result.get("addComment") or {}).get("commentEdge") or {}).get("node") or {}
        url = edge.get("url")
        return url if isinstance(url, str) else None


__all__ = ["DEFAULT_ENDPOINT", "GitHubHub", "HubClient", "fork_from_node"]
