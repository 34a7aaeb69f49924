"""JIRA REST API client for closing and commenting on issues."""

import httpx

_JIRA_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def _issue_url(api_url: str, issue_key: str, resource: str) -> str:
    return f"{api_url.rstrip('/')}/rest/api/2/issue/{issue_key}/{resource}"


async def transition_issue(
    client: httpx.AsyncClient,
    api_url: str,
    issue_key: str,
    transition_id: str,
    comment: str,
    auth: tuple[str, str] | None = None,
) -> None:
    """Move an issue through a workflow transition, attaching a comment.

    Args:
        client: Shared httpx async client (for connection pooling).
        api_url: JIRA base URL, e.g. ``https://jira.example``.
        issue_key: Issue key such as ``PROJ-12``.
        transition_id: Numeric id of the transition, as a string.
        comment: Comment body added as part of the transition.
        auth: Optional basic auth credentials.

    Raises:
        httpx.HTTPStatusError: On non-2xx responses.
    """
    body = {
        "update": {"comment": [{"add": {"body": comment}}]},
        "transition": {"id": transition_id},
    }
    resp = await client.post(
        _issue_url(api_url, issue_key, "transitions"),
        json=body,
        headers=_JIRA_HEADERS,
        auth=auth,
    )
    resp.raise_for_status()


async def add_comment(
    client: httpx.AsyncClient,
    api_url: str,
    issue_key: str,
    comment: str,
    auth: tuple[str, str] | None = None,
) -> None:
    """Post a comment on an issue.

    Any 2xx counts as success; the response body is ignored.

    Raises:
        httpx.HTTPStatusError: On non-2xx responses.
    """
    resp = await client.post(
        _issue_url(api_url, issue_key, "comment"),
        json={"body": comment},
        headers=_JIRA_HEADERS,
        auth=auth,
    )
    resp.raise_for_status()
