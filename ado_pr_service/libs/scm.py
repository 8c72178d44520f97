"""Provider independent pull request automation interface.

The automation tool iterates repositories and pull requests through these
shapes only; each hosting provider adapts its own objects to them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class PullRequestStatus(Enum):
    """Generic pull request status."""

    UNKNOWN = "unknown"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    MERGED = "merged"
    CLOSED = "closed"


@dataclass
class NewPullRequest:
    """Description of a pull request to create or of the wanted state of an existing one."""

    title: str
    body: str
    head: str
    base: str
    draft: bool = False
    reviewers: list[str] = field(default_factory=list)
    team_reviewers: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)


class Repository(ABC):
    @property
    @abstractmethod
    def clone_url(self) -> str:
        pass

    @property
    @abstractmethod
    def default_branch(self) -> str:
        pass

    @property
    @abstractmethod
    def full_name(self) -> str:
        pass


class PullRequest(ABC):
    @property
    @abstractmethod
    def status(self) -> PullRequestStatus:
        pass

    @property
    @abstractmethod
    def url(self) -> str:
        pass

    @abstractmethod
    def __str__(self) -> str:
        pass
