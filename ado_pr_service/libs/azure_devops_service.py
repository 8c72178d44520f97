from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from ado_pr_service.libs.azure_devops_api import AzureDevOpsAPI
from ado_pr_service.libs.config import Config
from ado_pr_service.libs.exceptions import UnsupportedOperationError
from ado_pr_service.libs.handlers.identity_handler import IdentityHandler
from ado_pr_service.libs.handlers.labels_handler import LabelsHandler
from ado_pr_service.libs.handlers.project_handler import ProjectHandler
from ado_pr_service.libs.handlers.pull_request_handler import PullRequestHandler
from ado_pr_service.libs.handlers.repository_handler import RepositoryHandler
from ado_pr_service.libs.handlers.reviewers_handler import ReviewersHandler
from ado_pr_service.libs.models import IdentityCache, Project, PullRequest, Repository
from ado_pr_service.libs.scm import NewPullRequest
from ado_pr_service.utils.constants import AUTO_COMPLETE_DEFAULTS, IDENTITY_API_LEGACY_STR
from ado_pr_service.utils.helpers import get_logger_with_params, parse_repository_reference, prepare_log_prefix


class AzureDevOpsService:
    """
    Pull request automation against Azure DevOps Services.

    Example:
        >>> service = AzureDevOpsService.from_config(Config())
        >>> for repository in await service.get_repositories():
        ...     pull_request = await service.get_open_pull_request(repository, "my-branch")
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        logger: logging.Logger,
        repositories: Mapping[str, list[str]],
        ssh_auth: bool = False,
        skip_forks: bool = False,
        skip_disabled: bool = True,
        identity_api: str = IDENTITY_API_LEGACY_STR,
        auto_complete: Mapping[str, Any] | None = None,
        api: AzureDevOpsAPI | None = None,
    ) -> None:
        """
        Args:
            base_url: Organisation URL (e.g. https://dev.azure.com/my-org)
            token: Personal access token
            logger: Logger instance
            repositories: Project name to wanted repository names, an empty list selects all repositories
            ssh_auth: Clone over SSH instead of HTTPS
            skip_forks: Exclude forked repositories
            skip_disabled: Exclude disabled repositories
            identity_api: Identity resolution strategy, "legacy" or "graph"
            auto_complete: Auto-complete settings overriding the defaults
            api: API gateway, built from base_url and token when not given
        """
        self.logger = logger
        self.base_url = base_url
        self.log_prefix: str = prepare_log_prefix(base_url=base_url)
        self.repositories: dict[str, list[str]] = dict(repositories)
        self.ssh_auth = ssh_auth
        self.skip_forks = skip_forks
        self.skip_disabled = skip_disabled
        self.identity_api = identity_api
        self.auto_complete: dict[str, Any] = {**AUTO_COMPLETE_DEFAULTS, **(auto_complete or {})}
        self.api = api or AzureDevOpsAPI(base_url=base_url, token=token, logger=logger)

        self.cache = IdentityCache()
        self._prefetch_lock = asyncio.Lock()

        self.project_handler = ProjectHandler(azure_devops_service=self)
        self.repository_handler = RepositoryHandler(azure_devops_service=self, project_handler=self.project_handler)
        self.identity_handler = IdentityHandler(azure_devops_service=self)
        self.labels_handler = LabelsHandler(azure_devops_service=self)
        self.reviewers_handler = ReviewersHandler(azure_devops_service=self)
        self.pull_request_handler = PullRequestHandler(
            azure_devops_service=self,
            project_handler=self.project_handler,
            labels_handler=self.labels_handler,
            reviewers_handler=self.reviewers_handler,
        )

    @classmethod
    def from_config(cls, config: Config, logger: logging.Logger | None = None) -> AzureDevOpsService:
        """
        Build a service from the config file.

        Raises:
            ValueError: If the config has invalid values
        """
        errors = config.validate()
        if errors:
            raise ValueError(f"Invalid config {config.config_path}: {'; '.join(errors)}")

        logger = logger or get_logger_with_params(config=config)
        repositories = parse_repository_reference(
            projects=config.get_value(value="projects", return_on_none=[]),
            repositories=config.get_value(value="repositories", return_on_none=[]),
            logger=logger,
        )

        return cls(
            base_url=config.base_url,
            token=config.pat_token,
            logger=logger,
            repositories=repositories,
            ssh_auth=config.get_value(value="ssh-auth", return_on_none=False),
            skip_forks=config.get_value(value="skip-forks", return_on_none=False),
            skip_disabled=config.get_value(value="skip-disabled", return_on_none=True),
            identity_api=config.identity_api,
            auto_complete=config.get_auto_complete_config(),
        )

    @property
    def projects(self) -> list[str]:
        return list(self.repositories)

    async def prefetch_data(self, new_pull_request: NewPullRequest) -> None:
        """
        Resolve author and reviewer identities once per service instance.

        Concurrent callers wait for the first resolution. A failed resolution
        propagates and leaves the cache unresolved.
        """
        async with self._prefetch_lock:
            if self.cache.prefetched:
                return

            await self.identity_handler.prefetch(new_pull_request=new_pull_request)
            self.cache.prefetched = True

    async def get_projects(self) -> list[Project]:
        return await self.project_handler.get_projects()

    async def get_repositories(self) -> list[Repository]:
        return await self.repository_handler.get_repositories()

    async def get_pull_requests(self, branch_name: str) -> list[PullRequest]:
        return await self.pull_request_handler.get_pull_requests(branch_name=branch_name)

    async def get_open_pull_request(self, repository: Repository, branch_name: str) -> PullRequest | None:
        return await self.pull_request_handler.get_open_pull_request(repository=repository, branch_name=branch_name)

    async def create_pull_request(
        self, repository: Repository, pr_repository: Repository, new_pull_request: NewPullRequest
    ) -> PullRequest:
        """
        Open a pull request in `repository`.

        Forks are not supported, the pull request is always opened from a branch of
        `repository` itself and `pr_repository` is not used.
        """
        await self.prefetch_data(new_pull_request=new_pull_request)
        return await self.pull_request_handler.create_pull_request(
            repository=repository, new_pull_request=new_pull_request
        )

    async def update_pull_request(
        self, repository: Repository, pull_request: PullRequest, updated_pull_request: NewPullRequest
    ) -> PullRequest:
        await self.prefetch_data(new_pull_request=updated_pull_request)
        return await self.pull_request_handler.update_pull_request(
            pull_request=pull_request, updated_pull_request=updated_pull_request
        )

    async def merge_pull_request(self, pull_request: PullRequest) -> None:
        await self.pull_request_handler.merge_pull_request(pull_request=pull_request)

    async def close_pull_request(self, pull_request: PullRequest) -> None:
        await self.pull_request_handler.close_pull_request(pull_request=pull_request)

    async def fork_repository(self, repository: Repository, new_owner: str) -> Repository:
        raise UnsupportedOperationError(f"{self.log_prefix} Forking {repository.full_name} is not supported")
