from typing import TYPE_CHECKING, Any

from azure.devops.v7_1.git.models import (
    GitCommitRef,
    GitPullRequest,
    GitPullRequestCompletionOptions,
    GitPullRequestSearchCriteria,
    GitRefUpdate,
    IdentityRef,
)

from ado_pr_service.libs.handlers.labels_handler import LabelsHandler
from ado_pr_service.libs.handlers.project_handler import ProjectHandler
from ado_pr_service.libs.handlers.reviewers_handler import ReviewersHandler
from ado_pr_service.libs.models import PullRequest, Repository
from ado_pr_service.libs.scm import NewPullRequest, PullRequestStatus
from ado_pr_service.utils.constants import (
    MERGE_STATUS_CONFLICTS_STR,
    MERGE_STATUS_FAILURE_STR,
    MERGE_STATUS_NOT_SET_STR,
    MERGE_STATUS_QUEUED_STR,
    MERGE_STATUS_REJECTED_BY_POLICY_STR,
    MERGE_STATUS_SUCCEEDED_STR,
    PR_STATUS_ABANDONED_STR,
    PR_STATUS_ACTIVE_STR,
    PR_STATUS_COMPLETED_STR,
    ZERO_OBJECT_ID,
)
from ado_pr_service.utils.helpers import branch_ref, ref_filter

if TYPE_CHECKING:
    from ado_pr_service.libs.azure_devops_service import AzureDevOpsService


def convert_pull_request_status(status: str | None, merge_status: str | None) -> PullRequestStatus:
    """
    Map the pull request lifecycle and its async merge evaluation to a generic status.

    Unknown combinations map to PullRequestStatus.UNKNOWN.
    """
    if status == PR_STATUS_ACTIVE_STR:
        if merge_status == MERGE_STATUS_SUCCEEDED_STR:
            return PullRequestStatus.SUCCESS

        if merge_status in (MERGE_STATUS_CONFLICTS_STR, MERGE_STATUS_FAILURE_STR, MERGE_STATUS_REJECTED_BY_POLICY_STR):
            return PullRequestStatus.ERROR

        if merge_status in (None, MERGE_STATUS_NOT_SET_STR, MERGE_STATUS_QUEUED_STR):
            return PullRequestStatus.PENDING

        return PullRequestStatus.UNKNOWN

    if status == PR_STATUS_ABANDONED_STR:
        return PullRequestStatus.CLOSED

    if status == PR_STATUS_COMPLETED_STR:
        return PullRequestStatus.MERGED

    # notSet, the "all" query sentinel and anything unexpected
    return PullRequestStatus.UNKNOWN


class PullRequestHandler:
    def __init__(
        self,
        azure_devops_service: "AzureDevOpsService",
        project_handler: ProjectHandler,
        labels_handler: LabelsHandler,
        reviewers_handler: ReviewersHandler,
    ) -> None:
        self.azure_devops_service = azure_devops_service
        self.project_handler = project_handler
        self.labels_handler = labels_handler
        self.reviewers_handler = reviewers_handler
        self.logger = self.azure_devops_service.logger
        self.log_prefix: str = self.azure_devops_service.log_prefix
        self.api = self.azure_devops_service.api

    def convert_pull_request(self, native_pull_request: Any) -> PullRequest:
        repository = native_pull_request.repository

        # Project wide queries return no repository web url
        web_url = ""
        if repository.web_url:
            web_url = f"{repository.web_url}/pullrequest/{native_pull_request.pull_request_id}"

        # Empty while the merge is still pending
        last_merge_source_commit_id = ""
        if native_pull_request.last_merge_source_commit:
            last_merge_source_commit_id = native_pull_request.last_merge_source_commit.commit_id or ""

        return PullRequest(
            id=native_pull_request.pull_request_id,
            project_name=repository.project.name,
            repository_name=repository.name,
            pr_status=convert_pull_request_status(native_pull_request.status, native_pull_request.merge_status),
            is_draft=bool(native_pull_request.is_draft),
            web_url=web_url,
            source_ref=native_pull_request.source_ref_name,
            target_ref=native_pull_request.target_ref_name,
            last_merge_source_commit_id=last_merge_source_commit_id,
        )

    async def get_pull_requests(self, branch_name: str) -> list[PullRequest]:
        """Get the pull requests with `branch_name` as source in every resolved project."""
        projects = await self.project_handler.get_projects()
        search_criteria = GitPullRequestSearchCriteria(source_ref_name=branch_ref(branch_name))

        pull_requests: list[PullRequest] = []
        for project in projects:
            native_pull_requests = await self.api.get_pull_requests_by_project(
                project=project.id, search_criteria=search_criteria
            )
            for native_pull_request in native_pull_requests:
                pull_request = self.convert_pull_request(native_pull_request=native_pull_request)
                self.logger.debug(f"{self.log_prefix} Found PR {pull_request}")
                pull_requests.append(pull_request)

        return pull_requests

    async def get_open_pull_request(self, repository: Repository, branch_name: str) -> PullRequest | None:
        native_pull_requests = await self.api.get_pull_requests(
            project=repository.project.id,
            repository_id=repository.id,
            search_criteria=GitPullRequestSearchCriteria(
                status=PR_STATUS_ACTIVE_STR,
                source_ref_name=branch_ref(branch_name),
            ),
            top=1,
        )
        if not native_pull_requests:
            return None

        return self.convert_pull_request(native_pull_request=native_pull_requests[0])

    async def create_pull_request(self, repository: Repository, new_pull_request: NewPullRequest) -> PullRequest:
        created_pull_request = await self.api.create_pull_request(
            project=repository.project.id,
            repository_id=repository.id,
            pull_request=GitPullRequest(
                title=new_pull_request.title,
                description=new_pull_request.body,
                source_ref_name=branch_ref(new_pull_request.head),
                target_ref_name=branch_ref(new_pull_request.base),
                is_draft=new_pull_request.draft,
                reviewers=self.azure_devops_service.cache.all_reviewers,
                labels=self.labels_handler.new_pull_request_labels(labels=new_pull_request.labels),
            ),
            supports_iterations=True,
        )
        pull_request = self.convert_pull_request(native_pull_request=created_pull_request)
        self.logger.info(f"{self.log_prefix} Created PR {pull_request}")

        if not new_pull_request.draft:
            await self.enable_auto_complete(native_pull_request=created_pull_request)

        return pull_request

    async def update_pull_request(self, pull_request: PullRequest, updated_pull_request: NewPullRequest) -> PullRequest:
        to_update = GitPullRequest(title=updated_pull_request.title, description=updated_pull_request.body)

        # The API rejects an update carrying an unchanged target ref
        target_ref = branch_ref(updated_pull_request.base)
        if pull_request.target_ref != target_ref:
            to_update.target_ref_name = target_ref

        try:
            native_updated_pull_request = await self.api.update_pull_request(
                project=pull_request.project_name,
                repository_id=pull_request.repository_name,
                pull_request_id=pull_request.id,
                pull_request=to_update,
            )
        except Exception:
            self.logger.exception(f"{self.log_prefix} Failed while updating PR {pull_request}")
            raise

        updated = self.convert_pull_request(native_pull_request=native_updated_pull_request)
        self.logger.info(f"{self.log_prefix} Updated PR {updated}")

        if updated_pull_request.reviewers or updated_pull_request.team_reviewers or updated_pull_request.assignees:
            try:
                await self.reviewers_handler.set_reviewers(
                    pull_request=updated, reviewers=self.azure_devops_service.cache.all_reviewers
                )
            except Exception:
                self.logger.exception(f"{self.log_prefix} Failed while updating PR {updated} reviewers")
                raise

        if not updated_pull_request.draft:
            await self.enable_auto_complete(native_pull_request=native_updated_pull_request)

        if updated_pull_request.labels:
            await self.labels_handler.set_labels(pull_request=updated, labels=updated_pull_request.labels)

        return updated

    async def enable_auto_complete(self, native_pull_request: Any) -> PullRequest | None:
        """
        Let the pull request merge itself once its policies pass.

        Failures are logged and not propagated.

        Returns:
            The updated pull request, None if auto-complete could not be set
        """
        auto_complete = self.azure_devops_service.auto_complete
        author = self.azure_devops_service.cache.author
        pull_request_id = native_pull_request.pull_request_id

        try:
            native_updated_pull_request = await self.api.update_pull_request(
                project=native_pull_request.repository.project.name,
                repository_id=native_pull_request.repository.name,
                pull_request_id=pull_request_id,
                pull_request=GitPullRequest(
                    auto_complete_set_by=IdentityRef(id=author.legacy_id if author else None),
                    completion_options=GitPullRequestCompletionOptions(
                        delete_source_branch=auto_complete["delete-source-branch"],
                        merge_strategy=auto_complete["merge-strategy"],
                        transition_work_items=auto_complete["transition-work-items"],
                        merge_commit_message=f"Merged PR {pull_request_id}: {native_pull_request.title}",
                    ),
                ),
            )
        except Exception as ex:
            self.logger.warning(f"{self.log_prefix} Failed to set auto complete on PR {pull_request_id}: {ex}")
            return None

        self.logger.debug(f"{self.log_prefix} Auto complete set on PR {pull_request_id}")
        return self.convert_pull_request(native_pull_request=native_updated_pull_request)

    async def merge_pull_request(self, pull_request: PullRequest) -> None:
        """
        Complete the pull request at its last merge source commit.

        Raises:
            ValueError: If the merge evaluation has not produced a source commit yet
        """
        if not pull_request.last_merge_source_commit_id:
            raise ValueError(f"{self.log_prefix} PR {pull_request} has no merge source commit yet, can not merge")

        await self.api.update_pull_request(
            project=pull_request.project_name,
            repository_id=pull_request.repository_name,
            pull_request_id=pull_request.id,
            pull_request=GitPullRequest(
                status=PR_STATUS_COMPLETED_STR,
                # Refuses the merge if the source branch moved since it was read
                last_merge_source_commit=GitCommitRef(commit_id=pull_request.last_merge_source_commit_id),
            ),
        )
        self.logger.info(f"{self.log_prefix} Merged PR {pull_request}")

    async def close_pull_request(self, pull_request: PullRequest) -> None:
        await self.api.update_pull_request(
            project=pull_request.project_name,
            repository_id=pull_request.repository_name,
            pull_request_id=pull_request.id,
            pull_request=GitPullRequest(status=PR_STATUS_ABANDONED_STR),
        )
        self.logger.info(f"{self.log_prefix} Abandoned PR {pull_request}")

        source_refs = await self.api.get_refs(
            project=pull_request.project_name,
            repository_id=pull_request.repository_name,
            filter=ref_filter(pull_request.source_ref),
            top=1,
        )
        # The refs filter matches by prefix, heads/feature also returns heads/feature-2
        if not source_refs or source_refs[0].name != pull_request.source_ref:
            self.logger.error(
                f"{self.log_prefix} Failed while trying to find branch {pull_request.source_ref} "
                f"to delete for PR {pull_request}"
            )
            return

        source_ref = source_refs[0]
        await self.api.update_refs(
            project=pull_request.project_name,
            repository_id=pull_request.repository_name,
            ref_updates=[
                GitRefUpdate(name=source_ref.name, old_object_id=source_ref.object_id, new_object_id=ZERO_OBJECT_ID)
            ],
        )
        self.logger.info(f"{self.log_prefix} Deleted branch {source_ref.name} of PR {pull_request}")
