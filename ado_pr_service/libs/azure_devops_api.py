"""Async gateway to the Azure DevOps REST API.

The azure-devops SDK is synchronous. Every SDK call made by this package goes
through this module, which runs it in a worker thread with asyncio.to_thread.

Clients:
- core: projects (https://learn.microsoft.com/en-us/rest/api/azure/devops/core/)
- git: repositories, pull requests, labels, reviewers, refs
  (https://learn.microsoft.com/en-us/rest/api/azure/devops/git/)
- graph: subject queries (https://learn.microsoft.com/en-us/rest/api/azure/devops/graph/)
- identity: legacy identities (https://learn.microsoft.com/en-us/rest/api/azure/devops/ims/)
- location: connection data of the authenticated user (undocumented)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from azure.devops.connection import Connection
from azure.devops.v7_1.git.models import (
    GitPullRequest,
    GitPullRequestSearchCriteria,
    GitRefUpdate,
    IdentityRefWithVote,
    WebApiCreateTagRequestData,
)
from azure.devops.v7_1.graph.models import GraphSubjectQuery
from azure.devops.v7_1.identity.models import IdentityBatchInfo
from msrest.authentication import BasicAuthentication


class AzureDevOpsAPI:
    """
    Async interface over the Azure DevOps SDK clients.

    Example:
        >>> api = AzureDevOpsAPI(base_url="https://dev.azure.com/my-org", token="...", logger=logger)
        >>> await api.initialize()
        >>> projects = await api.get_projects(state_filter="wellFormed")
    """

    def __init__(self, base_url: str, token: str, logger: logging.Logger) -> None:
        """
        Initialize the API gateway.

        Args:
            base_url: Organisation URL (e.g. https://dev.azure.com/my-org)
            token: Personal access token
            logger: Logger instance
        """
        self.base_url = base_url
        self.logger = logger
        self.connection = Connection(base_url=base_url, creds=BasicAuthentication("", token))

        self.core_client: Any = None
        self.git_client: Any = None
        self.graph_client: Any = None
        self.identity_client: Any = None
        self.location_client: Any = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the SDK clients once."""
        async with self._init_lock:
            if self._initialized:
                return

            clients = self.connection.clients_v7_1
            self.core_client = await asyncio.to_thread(clients.get_core_client)
            self.git_client = await asyncio.to_thread(clients.get_git_client)
            self.graph_client = await asyncio.to_thread(clients.get_graph_client)
            self.identity_client = await asyncio.to_thread(clients.get_identity_client)
            self.location_client = await asyncio.to_thread(clients.get_location_client)

            self._initialized = True
            self.logger.info(f"Azure DevOps API initialized for {self.base_url}")

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    # ===== Projects =====

    async def get_projects(self, state_filter: str | None = None) -> list[Any]:
        """
        List all projects, following continuation tokens.

        Args:
            state_filter: Project state to filter on server side (e.g. "wellFormed")

        Returns:
            List of TeamProjectReference
        """
        await self._ensure_initialized()

        projects: list[Any] = []
        continuation_token = None
        while True:
            response = await asyncio.to_thread(
                self.core_client.get_projects,
                state_filter=state_filter,
                continuation_token=continuation_token,
            )
            projects.extend(response.value or [])
            continuation_token = response.continuation_token
            if not continuation_token:
                return projects

    # ===== Repositories =====

    async def get_repositories(self, project: str) -> list[Any]:
        await self._ensure_initialized()
        return await asyncio.to_thread(self.git_client.get_repositories, project=project) or []

    # ===== Pull requests =====

    async def get_pull_requests_by_project(self, project: str, search_criteria: GitPullRequestSearchCriteria) -> list[Any]:
        await self._ensure_initialized()
        return (
            await asyncio.to_thread(
                self.git_client.get_pull_requests_by_project, project=project, search_criteria=search_criteria
            )
            or []
        )

    async def get_pull_requests(
        self,
        project: str,
        repository_id: str,
        search_criteria: GitPullRequestSearchCriteria,
        top: int | None = None,
    ) -> list[Any]:
        await self._ensure_initialized()
        return (
            await asyncio.to_thread(
                self.git_client.get_pull_requests,
                repository_id=repository_id,
                search_criteria=search_criteria,
                project=project,
                top=top,
            )
            or []
        )

    async def create_pull_request(
        self, project: str, repository_id: str, pull_request: GitPullRequest, supports_iterations: bool = True
    ) -> Any:
        await self._ensure_initialized()
        return await asyncio.to_thread(
            self.git_client.create_pull_request,
            git_pull_request_to_create=pull_request,
            repository_id=repository_id,
            project=project,
            supports_iterations=supports_iterations,
        )

    async def update_pull_request(
        self, project: str, repository_id: str, pull_request_id: int, pull_request: GitPullRequest
    ) -> Any:
        await self._ensure_initialized()
        return await asyncio.to_thread(
            self.git_client.update_pull_request,
            git_pull_request_to_update=pull_request,
            repository_id=repository_id,
            pull_request_id=pull_request_id,
            project=project,
        )

    # ===== Labels =====

    async def get_pull_request_labels(self, project: str, repository_id: str, pull_request_id: int) -> list[Any]:
        await self._ensure_initialized()
        return (
            await asyncio.to_thread(
                self.git_client.get_pull_request_labels,
                repository_id=repository_id,
                pull_request_id=pull_request_id,
                project=project,
            )
            or []
        )

    async def create_pull_request_label(self, project: str, repository_id: str, pull_request_id: int, name: str) -> Any:
        await self._ensure_initialized()
        return await asyncio.to_thread(
            self.git_client.create_pull_request_label,
            label=WebApiCreateTagRequestData(name=name),
            repository_id=repository_id,
            pull_request_id=pull_request_id,
            project=project,
        )

    async def delete_pull_request_label(self, project: str, repository_id: str, pull_request_id: int, name: str) -> None:
        await self._ensure_initialized()
        await asyncio.to_thread(
            self.git_client.delete_pull_request_labels,
            repository_id=repository_id,
            pull_request_id=pull_request_id,
            label_id_or_name=name,
            project=project,
        )

    # ===== Reviewers =====

    async def get_pull_request_reviewers(self, project: str, repository_id: str, pull_request_id: int) -> list[Any]:
        await self._ensure_initialized()
        return (
            await asyncio.to_thread(
                self.git_client.get_pull_request_reviewers,
                repository_id=repository_id,
                pull_request_id=pull_request_id,
                project=project,
            )
            or []
        )

    async def create_pull_request_reviewer(
        self, project: str, repository_id: str, pull_request_id: int, reviewer: IdentityRefWithVote
    ) -> Any:
        await self._ensure_initialized()
        return await asyncio.to_thread(
            self.git_client.create_pull_request_reviewer,
            reviewer=reviewer,
            repository_id=repository_id,
            pull_request_id=pull_request_id,
            reviewer_id=reviewer.id,
            project=project,
        )

    async def delete_pull_request_reviewer(
        self, project: str, repository_id: str, pull_request_id: int, reviewer_id: str
    ) -> None:
        await self._ensure_initialized()
        await asyncio.to_thread(
            self.git_client.delete_pull_request_reviewer,
            repository_id=repository_id,
            pull_request_id=pull_request_id,
            reviewer_id=reviewer_id,
            project=project,
        )

    # ===== Refs =====

    async def get_refs(self, project: str, repository_id: str, filter: str, top: int | None = None) -> list[Any]:
        await self._ensure_initialized()
        response = await asyncio.to_thread(
            self.git_client.get_refs,
            repository_id=repository_id,
            project=project,
            filter=filter,
            top=top,
        )
        return response.value or []

    async def update_refs(self, project: str, repository_id: str, ref_updates: list[GitRefUpdate]) -> list[Any]:
        await self._ensure_initialized()
        return await asyncio.to_thread(
            self.git_client.update_refs,
            ref_updates=ref_updates,
            repository_id=repository_id,
            project=project,
        )

    # ===== Identities =====

    async def query_subjects(self, query: str, subject_kind: list[str]) -> list[Any]:
        await self._ensure_initialized()
        return (
            await asyncio.to_thread(
                self.graph_client.query_subjects,
                subject_query=GraphSubjectQuery(query=query, subject_kind=subject_kind),
            )
            or []
        )

    async def read_identity_batch(self, subject_descriptors: list[str], query_membership: str) -> list[Any]:
        await self._ensure_initialized()
        return (
            await asyncio.to_thread(
                self.identity_client.read_identity_batch,
                batch_info=IdentityBatchInfo(
                    subject_descriptors=subject_descriptors,
                    query_membership=query_membership,
                ),
            )
            or []
        )

    async def read_identities(self, search_filter: str, filter_value: str, query_membership: str) -> list[Any]:
        await self._ensure_initialized()
        return (
            await asyncio.to_thread(
                self.identity_client.read_identities,
                search_filter=search_filter,
                filter_value=filter_value,
                query_membership=query_membership,
            )
            or []
        )

    async def get_connection_data(self) -> Any:
        await self._ensure_initialized()
        return await asyncio.to_thread(self.location_client.get_connection_data)
