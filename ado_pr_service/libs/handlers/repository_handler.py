from typing import TYPE_CHECKING, Any

from ado_pr_service.libs.exceptions import RepositoryNotInitializedError
from ado_pr_service.libs.handlers.project_handler import ProjectHandler
from ado_pr_service.libs.models import Project, Repository
from ado_pr_service.utils.helpers import strip_branch_ref

if TYPE_CHECKING:
    from ado_pr_service.libs.azure_devops_service import AzureDevOpsService


class RepositoryHandler:
    def __init__(self, azure_devops_service: "AzureDevOpsService", project_handler: ProjectHandler) -> None:
        self.azure_devops_service = azure_devops_service
        self.project_handler = project_handler
        self.logger = self.azure_devops_service.logger
        self.log_prefix: str = self.azure_devops_service.log_prefix
        self.api = self.azure_devops_service.api

    def convert_repository(self, native_repository: Any) -> Repository:
        """
        Convert an SDK GitRepository to a Repository.

        Raises:
            RepositoryNotInitializedError: If the repository has no default branch
        """
        if not native_repository.default_branch:
            raise RepositoryNotInitializedError(
                f"repository {native_repository.project.name}/{native_repository.name} is not initialized"
            )

        if self.azure_devops_service.ssh_auth:
            clone_url = native_repository.ssh_url
        else:
            clone_url = native_repository.remote_url

        return Repository(
            id=str(native_repository.id),
            project=Project(id=str(native_repository.project.id), name=native_repository.project.name),
            url=clone_url,
            name=native_repository.name,
            default_branch_name=strip_branch_ref(native_repository.default_branch),
            default_branch_ref=native_repository.default_branch,
        )

    def is_wanted(self, project: Project, native_repository: Any) -> bool:
        if native_repository.is_disabled and self.azure_devops_service.skip_disabled:
            self.logger.debug(f"{self.log_prefix} Skipping {project.name}/{native_repository.name} since it's disabled")
            return False

        if self.azure_devops_service.skip_forks and native_repository.is_fork:
            self.logger.debug(f"{self.log_prefix} Skipping {project.name}/{native_repository.name} since it's a fork")
            return False

        wanted_repositories = self.azure_devops_service.repositories.get(project.name)
        if wanted_repositories is None:
            return False

        # An empty list selects every repository of the project
        return not wanted_repositories or native_repository.name in wanted_repositories

    async def get_repositories(self) -> list[Repository]:
        """
        List the repositories of every resolved project.

        A listing error of any project aborts the whole listing.
        Repositories without a default branch are logged and excluded.
        """
        projects = await self.project_handler.get_projects()

        repositories: list[Repository] = []
        for project in projects:
            native_repositories = await self.api.get_repositories(project=project.id)

            for native_repository in native_repositories:
                if not self.is_wanted(project=project, native_repository=native_repository):
                    continue

                try:
                    repositories.append(self.convert_repository(native_repository=native_repository))
                except RepositoryNotInitializedError as ex:
                    self.logger.error(f"{self.log_prefix} Skipping repository: {ex}")

        self.logger.info(f"{self.log_prefix} Found {len(repositories)} repositories")
        return repositories
