from typing import TYPE_CHECKING

from azure.devops.v7_1.git.models import IdentityRefWithVote

from ado_pr_service.libs.models import Descriptor
from ado_pr_service.libs.scm import NewPullRequest
from ado_pr_service.utils.constants import (
    GROUP_SUBJECT_KIND_STR,
    IDENTITY_API_GRAPH_STR,
    IDENTITY_SEARCH_FILTER_STR,
    QUERY_MEMBERSHIP_NONE_STR,
    USER_SUBJECT_KIND_STR,
)

if TYPE_CHECKING:
    from ado_pr_service.libs.azure_devops_service import AzureDevOpsService


class IdentityHandler:
    """
    Resolve user and group names to Azure DevOps identities.

    Two identity APIs exist. The graph API knows subjects by graph descriptor, while
    the pull request reviewer API still needs the legacy identity id. The graph
    strategy queries subjects then bridges them to legacy ids in one batch, the
    legacy strategy searches legacy identities directly.
    """

    def __init__(self, azure_devops_service: "AzureDevOpsService") -> None:
        self.azure_devops_service = azure_devops_service
        self.logger = self.azure_devops_service.logger
        self.log_prefix: str = self.azure_devops_service.log_prefix
        self.api = self.azure_devops_service.api

    async def get_identities(self, names: list[str]) -> list[Descriptor]:
        if self.azure_devops_service.identity_api == IDENTITY_API_GRAPH_STR:
            return await self.get_graph_identities(names=names)

        return await self.get_legacy_identities(names=names)

    async def get_graph_identities(self, names: list[str]) -> list[Descriptor]:
        descriptors: list[Descriptor] = []
        for name in names:
            subjects = await self.api.query_subjects(
                query=name, subject_kind=[USER_SUBJECT_KIND_STR, GROUP_SUBJECT_KIND_STR]
            )
            if not subjects:
                self.logger.warning(f"{self.log_prefix} No identity found for {name}")
                continue

            # First match wins, the principal name is not part of the query result
            subject = subjects[0]
            descriptor = Descriptor(
                graph_id=subject.descriptor,
                display_name=subject.display_name,
                subject_kind=subject.subject_kind,
            )
            self.logger.debug(f"{self.log_prefix} Matched {name} with {descriptor.graph_id}")
            descriptors.append(descriptor)

        if not descriptors:
            return descriptors

        legacy_identities = await self.api.read_identity_batch(
            subject_descriptors=[descriptor.graph_id for descriptor in descriptors],
            query_membership=QUERY_MEMBERSHIP_NONE_STR,
        )
        legacy_ids = {identity.subject_descriptor: str(identity.id) for identity in legacy_identities}

        for descriptor in descriptors:
            descriptor.legacy_id = legacy_ids.get(descriptor.graph_id)
            if descriptor.legacy_id:
                self.logger.debug(f"{self.log_prefix} Got legacy {descriptor.legacy_id} for {descriptor.graph_id}")
            else:
                self.logger.warning(f"{self.log_prefix} No legacy identity found for {descriptor}")

        return [descriptor for descriptor in descriptors if descriptor.legacy_id]

    async def get_legacy_identities(self, names: list[str]) -> list[Descriptor]:
        descriptors: list[Descriptor] = []
        for name in names:
            identities = await self.api.read_identities(
                search_filter=IDENTITY_SEARCH_FILTER_STR,
                filter_value=name,
                query_membership=QUERY_MEMBERSHIP_NONE_STR,
            )
            if not identities:
                self.logger.warning(f"{self.log_prefix} No identity found for {name}")
                continue

            identity = identities[0]
            descriptor = Descriptor(
                graph_id=identity.subject_descriptor,
                legacy_id=str(identity.id),
                display_name=identity.provider_display_name,
            )
            self.logger.debug(f"{self.log_prefix} Matched {name} with {descriptor.legacy_id}")
            descriptors.append(descriptor)

        return descriptors

    async def get_current_identity(self) -> Descriptor:
        connection_data = await self.api.get_connection_data()
        user = connection_data.authenticated_user

        return Descriptor(
            graph_id=user.subject_descriptor,
            legacy_id=str(user.id),
            display_name=user.provider_display_name,
        )

    @staticmethod
    def to_identities_with_vote(descriptors: list[Descriptor], is_required: bool) -> list[IdentityRefWithVote]:
        return [
            IdentityRefWithVote(
                id=descriptor.legacy_id,
                display_name=descriptor.display_name,
                vote=0,
                is_required=is_required,
            )
            for descriptor in descriptors
        ]

    async def prefetch(self, new_pull_request: NewPullRequest) -> None:
        """Resolve the author and every wanted reviewer into the service cache."""
        cache = self.azure_devops_service.cache

        cache.author = await self.get_current_identity()
        cache.reviewers = self.to_identities_with_vote(
            await self.get_identities(names=new_pull_request.reviewers), is_required=False
        )
        cache.team_reviewers = self.to_identities_with_vote(
            await self.get_identities(names=new_pull_request.team_reviewers), is_required=False
        )
        cache.assignees = self.to_identities_with_vote(
            await self.get_identities(names=new_pull_request.assignees), is_required=True
        )

        self.logger.debug(
            f"{self.log_prefix} Prefetched identities: author {cache.author}, "
            f"{len(cache.reviewers)} reviewers, {len(cache.team_reviewers)} team reviewers, "
            f"{len(cache.assignees)} assignees"
        )
