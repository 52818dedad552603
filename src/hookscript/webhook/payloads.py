"""Typed payload schemas for GitHub webhook events.

Each known ``X-GitHub-Event`` label maps to a pydantic model describing the
payload GitHub sends for it. The models declare the commonly used fields and
allow any other key, so fields GitHub adds later stay reachable from scripts
through generic key access.

Every declared field is optional. A payload only fails to decode when a
present field has an incompatible type (for example an object where a string
is expected); missing fields decode to None.

Reference: https://docs.github.com/webhooks/webhook-events-and-payloads
"""

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict


class GitHubModel(BaseModel):
    """Base model for GitHub payload objects.

    Extra keys are kept so scripts can read fields this module does not
    declare.
    """

    model_config = ConfigDict(extra="allow")


# =============================================================================
# Shared objects
# =============================================================================


class User(GitHubModel):
    """A GitHub user or organization account."""

    login: Optional[str] = None
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    type: Optional[str] = None
    site_admin: Optional[bool] = None
    html_url: Optional[str] = None
    avatar_url: Optional[str] = None


class CommitAuthor(GitHubModel):
    """Author or committer of a git commit, and the pusher of a push."""

    name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    date: Optional[str] = None


class Repository(GitHubModel):
    """A repository as embedded in event payloads."""

    id: Optional[int] = None
    name: Optional[str] = None
    full_name: Optional[str] = None
    owner: Optional[User] = None
    private: Optional[bool] = None
    description: Optional[str] = None
    fork: Optional[bool] = None
    html_url: Optional[str] = None
    url: Optional[str] = None
    clone_url: Optional[str] = None
    ssh_url: Optional[str] = None
    git_url: Optional[str] = None
    homepage: Optional[str] = None
    language: Optional[str] = None
    default_branch: Optional[str] = None
    master_branch: Optional[str] = None


class Organization(GitHubModel):
    """An organization as embedded in event payloads."""

    login: Optional[str] = None
    id: Optional[int] = None
    url: Optional[str] = None
    description: Optional[str] = None


class Commit(GitHubModel):
    """A commit as listed in a push payload."""

    id: Optional[str] = None
    tree_id: Optional[str] = None
    distinct: Optional[bool] = None
    message: Optional[str] = None
    timestamp: Optional[str] = None
    url: Optional[str] = None
    author: Optional[CommitAuthor] = None
    committer: Optional[CommitAuthor] = None
    added: Optional[List[str]] = None
    removed: Optional[List[str]] = None
    modified: Optional[List[str]] = None


class Label(GitHubModel):
    """An issue or pull request label."""

    name: Optional[str] = None
    color: Optional[str] = None
    url: Optional[str] = None


class Issue(GitHubModel):
    """An issue as embedded in issue and comment payloads."""

    id: Optional[int] = None
    number: Optional[int] = None
    title: Optional[str] = None
    body: Optional[str] = None
    state: Optional[str] = None
    locked: Optional[bool] = None
    user: Optional[User] = None
    assignee: Optional[User] = None
    labels: Optional[List[Label]] = None
    comments: Optional[int] = None
    html_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    closed_at: Optional[str] = None


class Comment(GitHubModel):
    """An issue, commit or review comment."""

    id: Optional[int] = None
    body: Optional[str] = None
    user: Optional[User] = None
    path: Optional[str] = None
    position: Optional[int] = None
    line: Optional[int] = None
    commit_id: Optional[str] = None
    html_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PullRequestRef(GitHubModel):
    """The head or base branch of a pull request."""

    label: Optional[str] = None
    ref: Optional[str] = None
    sha: Optional[str] = None
    user: Optional[User] = None
    repo: Optional[Repository] = None


class PullRequest(GitHubModel):
    """A pull request as embedded in pull request payloads."""

    id: Optional[int] = None
    number: Optional[int] = None
    title: Optional[str] = None
    body: Optional[str] = None
    state: Optional[str] = None
    locked: Optional[bool] = None
    merged: Optional[bool] = None
    mergeable: Optional[bool] = None
    merge_commit_sha: Optional[str] = None
    user: Optional[User] = None
    assignee: Optional[User] = None
    merged_by: Optional[User] = None
    head: Optional[PullRequestRef] = None
    base: Optional[PullRequestRef] = None
    html_url: Optional[str] = None
    diff_url: Optional[str] = None
    commits: Optional[int] = None
    additions: Optional[int] = None
    deletions: Optional[int] = None
    changed_files: Optional[int] = None


class Review(GitHubModel):
    """A pull request review."""

    id: Optional[int] = None
    body: Optional[str] = None
    state: Optional[str] = None
    user: Optional[User] = None
    commit_id: Optional[str] = None
    html_url: Optional[str] = None
    submitted_at: Optional[str] = None


class Release(GitHubModel):
    """A repository release."""

    id: Optional[int] = None
    tag_name: Optional[str] = None
    target_commitish: Optional[str] = None
    name: Optional[str] = None
    body: Optional[str] = None
    draft: Optional[bool] = None
    prerelease: Optional[bool] = None
    author: Optional[User] = None
    html_url: Optional[str] = None
    tarball_url: Optional[str] = None
    zipball_url: Optional[str] = None
    created_at: Optional[str] = None
    published_at: Optional[str] = None


class Deployment(GitHubModel):
    """A deployment request."""

    id: Optional[int] = None
    sha: Optional[str] = None
    ref: Optional[str] = None
    task: Optional[str] = None
    environment: Optional[str] = None
    description: Optional[str] = None
    payload: Any = None
    creator: Optional[User] = None
    url: Optional[str] = None


class DeploymentStatus(GitHubModel):
    """The status of a deployment."""

    id: Optional[int] = None
    state: Optional[str] = None
    description: Optional[str] = None
    target_url: Optional[str] = None
    creator: Optional[User] = None


class Hook(GitHubModel):
    """The webhook configuration sent with a ping."""

    id: Optional[int] = None
    type: Optional[str] = None
    name: Optional[str] = None
    active: Optional[bool] = None
    events: Optional[List[str]] = None
    config: Optional[Dict[str, Any]] = None


class Page(GitHubModel):
    """A wiki page touched by a gollum event."""

    page_name: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    action: Optional[str] = None
    sha: Optional[str] = None
    html_url: Optional[str] = None


class Team(GitHubModel):
    """An organization team."""

    id: Optional[int] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    permission: Optional[str] = None
    url: Optional[str] = None


class PageBuild(GitHubModel):
    """A GitHub Pages build."""

    url: Optional[str] = None
    status: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    pusher: Optional[User] = None
    commit: Optional[str] = None
    duration: Optional[int] = None


# =============================================================================
# Event payloads
# =============================================================================


class EventPayload(GitHubModel):
    """Fields present on most event payloads."""

    action: Optional[str] = None
    sender: Optional[User] = None
    repository: Optional[Repository] = None
    organization: Optional[Organization] = None


class CommitCommentEvent(EventPayload):
    comment: Optional[Comment] = None


class CreateEvent(EventPayload):
    ref: Optional[str] = None
    ref_type: Optional[str] = None
    master_branch: Optional[str] = None
    description: Optional[str] = None
    pusher_type: Optional[str] = None


class DeleteEvent(EventPayload):
    ref: Optional[str] = None
    ref_type: Optional[str] = None
    pusher_type: Optional[str] = None


class DeploymentEvent(EventPayload):
    deployment: Optional[Deployment] = None


class DeploymentStatusEvent(EventPayload):
    deployment: Optional[Deployment] = None
    deployment_status: Optional[DeploymentStatus] = None


class ForkEvent(EventPayload):
    forkee: Optional[Repository] = None


class GollumEvent(EventPayload):
    pages: Optional[List[Page]] = None


class IssueCommentEvent(EventPayload):
    issue: Optional[Issue] = None
    comment: Optional[Comment] = None


class IssuesEvent(EventPayload):
    issue: Optional[Issue] = None
    label: Optional[Label] = None
    assignee: Optional[User] = None


class MemberEvent(EventPayload):
    member: Optional[User] = None


class MembershipEvent(EventPayload):
    scope: Optional[str] = None
    member: Optional[User] = None
    team: Optional[Team] = None


class PageBuildEvent(EventPayload):
    id: Optional[int] = None
    build: Optional[PageBuild] = None


class PingEvent(EventPayload):
    zen: Optional[str] = None
    hook_id: Optional[int] = None
    hook: Optional[Hook] = None


class PublicEvent(EventPayload):
    pass


class PullRequestEvent(EventPayload):
    number: Optional[int] = None
    pull_request: Optional[PullRequest] = None
    label: Optional[Label] = None


class PullRequestReviewEvent(EventPayload):
    review: Optional[Review] = None
    pull_request: Optional[PullRequest] = None


class PullRequestReviewCommentEvent(EventPayload):
    comment: Optional[Comment] = None
    pull_request: Optional[PullRequest] = None


class PushEvent(EventPayload):
    """Payload for ``push`` events.

    ``pusher`` carries the name and e-mail of the account that pushed,
    ``head_commit`` the tip of ``ref`` after the push.
    """

    ref: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None
    created: Optional[bool] = None
    deleted: Optional[bool] = None
    forced: Optional[bool] = None
    base_ref: Optional[str] = None
    compare: Optional[str] = None
    commits: Optional[List[Commit]] = None
    head_commit: Optional[Commit] = None
    pusher: Optional[CommitAuthor] = None


class ReleaseEvent(EventPayload):
    release: Optional[Release] = None


class RepositoryEvent(EventPayload):
    pass


class StatusEvent(EventPayload):
    id: Optional[int] = None
    sha: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    description: Optional[str] = None
    target_url: Optional[str] = None
    context: Optional[str] = None
    commit: Optional[Dict[str, Any]] = None
    branches: Optional[List[Dict[str, Any]]] = None


class TeamAddEvent(EventPayload):
    team: Optional[Team] = None


class WatchEvent(EventPayload):
    pass


# Event label -> payload schema. Labels not listed here decode to the
# generic JSON tree.
EVENT_PAYLOADS: Dict[str, Type[EventPayload]] = {
    "commit_comment": CommitCommentEvent,
    "create": CreateEvent,
    "delete": DeleteEvent,
    "deployment": DeploymentEvent,
    "deployment_status": DeploymentStatusEvent,
    "fork": ForkEvent,
    "gollum": GollumEvent,
    "issue_comment": IssueCommentEvent,
    "issues": IssuesEvent,
    "member": MemberEvent,
    "membership": MembershipEvent,
    "page_build": PageBuildEvent,
    "ping": PingEvent,
    "public": PublicEvent,
    "pull_request": PullRequestEvent,
    "pull_request_review": PullRequestReviewEvent,
    "pull_request_review_comment": PullRequestReviewCommentEvent,
    "push": PushEvent,
    "release": ReleaseEvent,
    "repository": RepositoryEvent,
    "status": StatusEvent,
    "team_add": TeamAddEvent,
    "watch": WatchEvent,
}
