import logging as python_logging
import uuid
from unittest.mock import AsyncMock, Mock

import pytest
from azure.devops.v7_1.core.models import TeamProjectReference
from azure.devops.v7_1.git.models import GitCommitRef, GitPullRequest, GitRepository

from ado_pr_service.libs.azure_devops_api import AzureDevOpsAPI
from ado_pr_service.libs.azure_devops_service import AzureDevOpsService
from ado_pr_service.libs.models import Project, PullRequest, Repository
from ado_pr_service.libs.scm import PullRequestStatus

BASE_URL: str = "https://dev.azure.com/my-org"
PROJECT_ID: str = str(uuid.UUID("11111111-1111-1111-1111-111111111111"))
REPOSITORY_ID: str = str(uuid.UUID("22222222-2222-2222-2222-222222222222"))
SSH_URL: str = "git@ssh.dev.azure.com:v3/my-org/my-project/my-repo"
HTTP_REMOTE_URL: str = "https://user@dev.azure.com/my-org/my-project/_git/my-repo"
WEB_URL: str = "https://dev.azure.com/my-org/my-project/_git/my-repo"


def make_native_project(name: str = "my-project", state: str = "wellFormed", project_id: str = PROJECT_ID):
    return TeamProjectReference(id=project_id, name=name, state=state)


def make_native_repository(
    name: str = "my-repo",
    default_branch: str | None = "refs/heads/main",
    is_disabled: bool = False,
    is_fork: bool | None = None,
    project_name: str = "my-project",
):
    return GitRepository(
        id=REPOSITORY_ID,
        name=name,
        project=TeamProjectReference(id=PROJECT_ID, name=project_name),
        default_branch=default_branch,
        ssh_url=SSH_URL,
        remote_url=HTTP_REMOTE_URL,
        web_url=WEB_URL,
        is_disabled=is_disabled,
        is_fork=is_fork,
    )


def make_native_pull_request(
    pull_request_id: int = 42,
    status: str = "active",
    merge_status: str | None = "succeeded",
    web_url: str | None = WEB_URL,
    last_merge_source_commit_id: str | None = "abc123",
    target_ref_name: str = "refs/heads/main",
):
    return GitPullRequest(
        pull_request_id=pull_request_id,
        repository=GitRepository(
            id=REPOSITORY_ID,
            name="my-repo",
            project=TeamProjectReference(id=PROJECT_ID, name="my-project"),
            web_url=web_url,
        ),
        status=status,
        merge_status=merge_status,
        is_draft=False,
        title="Update dependencies",
        source_ref_name="refs/heads/feature",
        target_ref_name=target_ref_name,
        last_merge_source_commit=(
            GitCommitRef(commit_id=last_merge_source_commit_id) if last_merge_source_commit_id else None
        ),
    )


@pytest.fixture
def test_logger() -> python_logging.Logger:
    # Standard Python logger for caplog compatibility
    logger = python_logging.getLogger("AzureDevOpsService")
    logger.setLevel(python_logging.DEBUG)
    return logger


@pytest.fixture
def mock_api() -> Mock:
    api = Mock(spec=AzureDevOpsAPI)
    for method_name in (
        "initialize",
        "get_projects",
        "get_repositories",
        "get_pull_requests_by_project",
        "get_pull_requests",
        "create_pull_request",
        "update_pull_request",
        "get_pull_request_labels",
        "create_pull_request_label",
        "delete_pull_request_label",
        "get_pull_request_reviewers",
        "create_pull_request_reviewer",
        "delete_pull_request_reviewer",
        "get_refs",
        "update_refs",
        "query_subjects",
        "read_identity_batch",
        "read_identities",
        "get_connection_data",
    ):
        setattr(api, method_name, AsyncMock())
    return api


@pytest.fixture
def azure_devops_service(mock_api: Mock, test_logger: python_logging.Logger) -> AzureDevOpsService:
    return AzureDevOpsService(
        base_url=BASE_URL,
        token="TOKEN",
        logger=test_logger,
        repositories={"my-project": []},
        api=mock_api,
    )


@pytest.fixture
def repository() -> Repository:
    return Repository(
        id=REPOSITORY_ID,
        project=Project(id=PROJECT_ID, name="my-project"),
        url=HTTP_REMOTE_URL,
        name="my-repo",
        default_branch_name="main",
        default_branch_ref="refs/heads/main",
    )


@pytest.fixture
def pull_request() -> PullRequest:
    return PullRequest(
        id=42,
        project_name="my-project",
        repository_name="my-repo",
        pr_status=PullRequestStatus.PENDING,
        is_draft=False,
        web_url=f"{WEB_URL}/pullrequest/42",
        source_ref="refs/heads/feature",
        target_ref="refs/heads/main",
        last_merge_source_commit_id="abc123",
    )


@pytest.fixture
def native_project_factory():
    return make_native_project


@pytest.fixture
def native_repository_factory():
    return make_native_repository


@pytest.fixture
def native_pull_request_factory():
    return make_native_pull_request
