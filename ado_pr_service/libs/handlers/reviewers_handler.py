from typing import TYPE_CHECKING

from azure.devops.v7_1.git.models import IdentityRefWithVote

from ado_pr_service.libs.models import PullRequest
from ado_pr_service.utils.helpers import reconcile

if TYPE_CHECKING:
    from ado_pr_service.libs.azure_devops_service import AzureDevOpsService


class ReviewersHandler:
    def __init__(self, azure_devops_service: "AzureDevOpsService") -> None:
        self.azure_devops_service = azure_devops_service
        self.logger = self.azure_devops_service.logger
        self.log_prefix: str = self.azure_devops_service.log_prefix
        self.api = self.azure_devops_service.api

    async def set_reviewers(self, pull_request: PullRequest, reviewers: list[IdentityRefWithVote]) -> dict[str, bool]:
        """
        Make the pull request reviewers exactly `reviewers`, keyed by legacy identity id.

        Returns:
            Mapping of reviewer id to whether it was kept
        """
        log_prefix = f"{self.log_prefix} [{pull_request}]"
        existing_reviewers = await self.api.get_pull_request_reviewers(
            project=pull_request.project_name,
            repository_id=pull_request.repository_name,
            pull_request_id=pull_request.id,
        )

        async def _add_reviewer(reviewer: IdentityRefWithVote) -> None:
            await self.api.create_pull_request_reviewer(
                project=pull_request.project_name,
                repository_id=pull_request.repository_name,
                pull_request_id=pull_request.id,
                reviewer=reviewer,
            )

        async def _remove_reviewer(reviewer_id: str) -> None:
            await self.api.delete_pull_request_reviewer(
                project=pull_request.project_name,
                repository_id=pull_request.repository_name,
                pull_request_id=pull_request.id,
                reviewer_id=reviewer_id,
            )

        return await reconcile(
            existing_keys=[reviewer.id for reviewer in existing_reviewers],
            desired=reviewers,
            key=lambda reviewer: reviewer.id,
            create=_add_reviewer,
            delete=_remove_reviewer,
            logger=self.logger,
            log_prefix=log_prefix,
            kind="reviewer",
        )
