import asyncio
import re
from typing import Any
from unittest.mock import AsyncMock, Mock, patch

import pytest
import yaml

from ado_pr_service.libs.azure_devops_service import AzureDevOpsService
from ado_pr_service.libs.config import Config
from ado_pr_service.libs.exceptions import UnsupportedOperationError
from ado_pr_service.libs.models import PullRequest, Repository
from ado_pr_service.libs.scm import NewPullRequest


@pytest.fixture
def new_pull_request() -> NewPullRequest:
    return NewPullRequest(title="t", body="b", head="feature", base="main", reviewers=["user"])


class TestPrefetch:
    """Test suite for the once-per-instance identity prefetch."""

    @pytest.mark.asyncio
    async def test_prefetch_runs_once_under_concurrency(
        self, azure_devops_service: AzureDevOpsService, new_pull_request: NewPullRequest
    ) -> None:
        """Concurrent callers share one identity resolution."""

        async def _slow_prefetch(new_pull_request: NewPullRequest) -> None:
            await asyncio.sleep(0.01)

        with patch.object(
            azure_devops_service.identity_handler, "prefetch", new=AsyncMock(side_effect=_slow_prefetch)
        ) as mock_prefetch:
            await asyncio.gather(*[azure_devops_service.prefetch_data(new_pull_request=new_pull_request) for _ in range(5)])

        mock_prefetch.assert_awaited_once()
        assert azure_devops_service.cache.prefetched is True

    @pytest.mark.asyncio
    async def test_failed_prefetch_is_retried(
        self, azure_devops_service: AzureDevOpsService, new_pull_request: NewPullRequest
    ) -> None:
        """A failing resolution propagates and leaves the cache unresolved."""
        with patch.object(
            azure_devops_service.identity_handler,
            "prefetch",
            new=AsyncMock(side_effect=[RuntimeError("401 Unauthorized"), None]),
        ) as mock_prefetch:
            with pytest.raises(RuntimeError, match="401"):
                await azure_devops_service.prefetch_data(new_pull_request=new_pull_request)

            assert azure_devops_service.cache.prefetched is False

            await azure_devops_service.prefetch_data(new_pull_request=new_pull_request)

        assert mock_prefetch.await_count == 2
        assert azure_devops_service.cache.prefetched is True

    @pytest.mark.asyncio
    async def test_create_pull_request_prefetches(
        self,
        azure_devops_service: AzureDevOpsService,
        repository: Repository,
        pull_request: PullRequest,
        new_pull_request: NewPullRequest,
    ) -> None:
        with (
            patch.object(azure_devops_service, "prefetch_data", new=AsyncMock()) as mock_prefetch,
            patch.object(
                azure_devops_service.pull_request_handler,
                "create_pull_request",
                new=AsyncMock(return_value=pull_request),
            ) as mock_create,
        ):
            result = await azure_devops_service.create_pull_request(
                repository=repository, pr_repository=repository, new_pull_request=new_pull_request
            )

        assert result is pull_request
        mock_prefetch.assert_awaited_once_with(new_pull_request=new_pull_request)
        mock_create.assert_awaited_once_with(repository=repository, new_pull_request=new_pull_request)

    @pytest.mark.asyncio
    async def test_update_pull_request_prefetches(
        self,
        azure_devops_service: AzureDevOpsService,
        repository: Repository,
        pull_request: PullRequest,
        new_pull_request: NewPullRequest,
    ) -> None:
        with (
            patch.object(azure_devops_service, "prefetch_data", new=AsyncMock()) as mock_prefetch,
            patch.object(
                azure_devops_service.pull_request_handler,
                "update_pull_request",
                new=AsyncMock(return_value=pull_request),
            ) as mock_update,
        ):
            await azure_devops_service.update_pull_request(
                repository=repository, pull_request=pull_request, updated_pull_request=new_pull_request
            )

        mock_prefetch.assert_awaited_once_with(new_pull_request=new_pull_request)
        mock_update.assert_awaited_once_with(pull_request=pull_request, updated_pull_request=new_pull_request)


class TestAzureDevOpsService:
    """Test suite for service construction and unsupported operations."""

    def test_projects(self, azure_devops_service: AzureDevOpsService) -> None:
        azure_devops_service.repositories = {"P1": [], "P2": ["repo"]}

        assert azure_devops_service.projects == ["P1", "P2"]

    def test_auto_complete_overrides(self, mock_api: Mock, test_logger) -> None:
        service = AzureDevOpsService(
            base_url="https://dev.azure.com/my-org",
            token="TOKEN",
            logger=test_logger,
            repositories={},
            auto_complete={"merge-strategy": "rebase"},
            api=mock_api,
        )

        assert service.auto_complete == {
            "merge-strategy": "rebase",
            "delete-source-branch": True,
            "transition-work-items": True,
        }
        assert service.log_prefix == "[ADO https://dev.azure.com/my-org]"

    def test_from_config(self, test_logger) -> None:
        """Every config setting reaches the service."""
        config_values = {
            "projects": ["P1"],
            "repositories": ["P2/repo"],
            "ssh-auth": True,
            "skip-forks": True,
            "skip-disabled": False,
        }
        mock_config = Mock()
        mock_config.get_value.side_effect = lambda value, return_on_none=None: config_values.get(value, return_on_none)
        mock_config.base_url = "https://dev.azure.com/my-org"
        mock_config.pat_token = "TOKEN"
        mock_config.identity_api = "graph"
        mock_config.get_auto_complete_config.return_value = {"merge-strategy": "noFastForward"}
        mock_config.validate.return_value = []

        with patch("ado_pr_service.libs.azure_devops_service.AzureDevOpsAPI") as mock_api_class:
            service = AzureDevOpsService.from_config(config=mock_config, logger=test_logger)

        mock_api_class.assert_called_once_with(base_url="https://dev.azure.com/my-org", token="TOKEN", logger=test_logger)
        assert service.repositories == {"P2": ["repo"], "P1": []}
        assert service.ssh_auth is True
        assert service.skip_forks is True
        assert service.skip_disabled is False
        assert service.identity_api == "graph"
        assert service.auto_complete["merge-strategy"] == "noFastForward"

    def test_from_config_builds_logger(self) -> None:
        """Without a logger one is built from the config."""
        mock_config = Mock()
        mock_config.get_value.side_effect = lambda value, return_on_none=None: return_on_none
        mock_config.base_url = "https://dev.azure.com/my-org"
        mock_config.get_auto_complete_config.return_value = {}
        mock_config.validate.return_value = []
        mock_logger = Mock()

        with (
            patch("ado_pr_service.libs.azure_devops_service.AzureDevOpsAPI"),
            patch(
                "ado_pr_service.libs.azure_devops_service.get_logger_with_params", return_value=mock_logger
            ) as mock_get_logger,
        ):
            service = AzureDevOpsService.from_config(config=mock_config)

        mock_get_logger.assert_called_once_with(config=mock_config)
        assert service.logger is mock_logger

    @pytest.mark.parametrize(
        "invalid_values,expected_error",
        [
            ({"identity-api": "Graph"}, "Field 'identity-api' must be one of: graph, legacy"),
            ({"auto-complete": {"merge-strategy": "octopus"}}, "Field 'auto-complete.merge-strategy' must be one of"),
        ],
    )
    def test_from_config_rejects_invalid_config(
        self,
        tmp_path,
        monkeypatch: pytest.MonkeyPatch,
        test_logger,
        invalid_values: dict[str, Any],
        expected_error: str,
    ) -> None:
        """Invalid values stop the service from being built."""
        monkeypatch.setenv("ADO_PR_SERVICE_DATA_DIR", str(tmp_path))
        with open(tmp_path / "config.yaml", "w") as fd:
            yaml.dump(
                {"base-url": "https://dev.azure.com/my-org", "pat-token": "TOKEN", "projects": ["P1"], **invalid_values},
                fd,
            )

        with (
            patch("ado_pr_service.libs.azure_devops_service.AzureDevOpsAPI") as mock_api_class,
            pytest.raises(ValueError, match=re.escape(expected_error)),
        ):
            AzureDevOpsService.from_config(config=Config(logger=test_logger), logger=test_logger)

        mock_api_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_fork_repository_not_supported(
        self, azure_devops_service: AzureDevOpsService, repository: Repository
    ) -> None:
        with pytest.raises(UnsupportedOperationError, match="my-project/my-repo"):
            await azure_devops_service.fork_repository(repository=repository, new_owner="someone")
