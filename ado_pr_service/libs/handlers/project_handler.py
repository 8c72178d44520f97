from typing import TYPE_CHECKING

from ado_pr_service.libs.models import Project
from ado_pr_service.utils.constants import PROJECT_STATE_WELL_FORMED_STR

if TYPE_CHECKING:
    from ado_pr_service.libs.azure_devops_service import AzureDevOpsService


class ProjectHandler:
    def __init__(self, azure_devops_service: "AzureDevOpsService") -> None:
        self.azure_devops_service = azure_devops_service
        self.logger = self.azure_devops_service.logger
        self.log_prefix: str = self.azure_devops_service.log_prefix
        self.api = self.azure_devops_service.api

    async def get_projects(self) -> list[Project]:
        """
        Get the well-formed projects that are in the configured allow-list.

        Returns:
            Resolved projects, empty when nothing matches
        """
        allowed_projects = self.azure_devops_service.projects
        native_projects = await self.api.get_projects(state_filter=PROJECT_STATE_WELL_FORMED_STR)

        projects: list[Project] = []
        for native_project in native_projects:
            if native_project.state != PROJECT_STATE_WELL_FORMED_STR:
                self.logger.debug(
                    f"{self.log_prefix} Skipping project {native_project.name} in state {native_project.state}"
                )
                continue

            if native_project.name in allowed_projects:
                projects.append(Project(id=str(native_project.id), name=native_project.name))

        self.logger.debug(f"{self.log_prefix} Resolved projects: {[project.name for project in projects]}")
        return projects
