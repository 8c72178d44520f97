"""
Azure DevOps shapes handed to the automation tool.

- Project: a resolved, well-formed project from the allow-list
- Repository: a git repository ready to be cloned (scm.Repository)
- PullRequest: a pull request translated to the generic status model (scm.PullRequest)
- Descriptor: a resolved identity bridging graph and legacy identity ids
- IdentityCache: identities resolved once per service instance
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ado_pr_service.libs import scm


@dataclass(frozen=True)
class Project:
    id: str
    name: str


@dataclass
class Repository(scm.Repository):
    id: str
    project: Project
    url: str
    name: str
    default_branch_name: str
    default_branch_ref: str

    @property
    def clone_url(self) -> str:
        return self.url

    @property
    def default_branch(self) -> str:
        return self.default_branch_name

    @property
    def full_name(self) -> str:
        return f"{self.project.name}/{self.name}"


@dataclass
class PullRequest(scm.PullRequest):
    id: int
    project_name: str
    repository_name: str
    pr_status: scm.PullRequestStatus
    is_draft: bool
    web_url: str
    source_ref: str
    target_ref: str
    last_merge_source_commit_id: str

    @property
    def status(self) -> scm.PullRequestStatus:
        return self.pr_status

    @property
    def url(self) -> str:
        return self.web_url

    def __str__(self) -> str:
        return f"{self.project_name}/{self.repository_name} #{self.id}"


@dataclass
class Descriptor:
    # Graph subject descriptor
    graph_id: str | None = None
    # Legacy identity id, still required by the pull request reviewer API
    legacy_id: str | None = None
    display_name: str | None = None
    subject_kind: str | None = None

    def __str__(self) -> str:
        return f"[{self.subject_kind}] {self.display_name} #{self.graph_id}"


@dataclass
class IdentityCache:
    author: Descriptor | None = None
    # azure.devops IdentityRefWithVote lists
    reviewers: list[Any] = field(default_factory=list)
    team_reviewers: list[Any] = field(default_factory=list)
    assignees: list[Any] = field(default_factory=list)
    prefetched: bool = False

    @property
    def all_reviewers(self) -> list[Any]:
        return [*self.reviewers, *self.team_reviewers, *self.assignees]
