from typing import TYPE_CHECKING

from azure.devops.v7_1.git.models import WebApiTagDefinition

from ado_pr_service.libs.models import PullRequest
from ado_pr_service.utils.helpers import reconcile

if TYPE_CHECKING:
    from ado_pr_service.libs.azure_devops_service import AzureDevOpsService


class LabelsHandler:
    def __init__(self, azure_devops_service: "AzureDevOpsService") -> None:
        self.azure_devops_service = azure_devops_service
        self.logger = self.azure_devops_service.logger
        self.log_prefix: str = self.azure_devops_service.log_prefix
        self.api = self.azure_devops_service.api

    @staticmethod
    def new_pull_request_labels(labels: list[str]) -> list[WebApiTagDefinition]:
        return [WebApiTagDefinition(name=label) for label in labels]

    async def pull_request_labels_names(self, pull_request: PullRequest) -> list[str]:
        labels = await self.api.get_pull_request_labels(
            project=pull_request.project_name,
            repository_id=pull_request.repository_name,
            pull_request_id=pull_request.id,
        )
        return [label.name for label in labels]

    async def set_labels(self, pull_request: PullRequest, labels: list[str]) -> dict[str, bool]:
        """
        Make the pull request labels exactly `labels`.

        Returns:
            Mapping of label name to whether it was kept
        """
        log_prefix = f"{self.log_prefix} [{pull_request}]"
        current_labels = await self.pull_request_labels_names(pull_request=pull_request)

        async def _add_label(label: str) -> None:
            await self.api.create_pull_request_label(
                project=pull_request.project_name,
                repository_id=pull_request.repository_name,
                pull_request_id=pull_request.id,
                name=label,
            )

        async def _remove_label(label: str) -> None:
            await self.api.delete_pull_request_label(
                project=pull_request.project_name,
                repository_id=pull_request.repository_name,
                pull_request_id=pull_request.id,
                name=label,
            )

        return await reconcile(
            existing_keys=current_labels,
            desired=labels,
            key=lambda label: label,
            create=_add_label,
            delete=_remove_label,
            logger=self.logger,
            log_prefix=log_prefix,
            kind="label",
        )
