import types
from collections.abc import Mapping

BRANCH_REF_PREFIX: str = "refs/heads/"
REF_PREFIX: str = "refs/"
# Azure DevOps deletes a ref when it is updated to this object id
ZERO_OBJECT_ID: str = "0" * 40
DEFAULT_DATA_DIR: str = "/home/ado/data"
DATA_DIR_ENV: str = "ADO_PR_SERVICE_DATA_DIR"
TOKEN_ENV: str = "AZURE_DEVOPS_TOKEN"

# Pull request lifecycle (GitPullRequest.status)
PR_STATUS_NOT_SET_STR: str = "notSet"
PR_STATUS_ACTIVE_STR: str = "active"
PR_STATUS_ABANDONED_STR: str = "abandoned"
PR_STATUS_COMPLETED_STR: str = "completed"
PR_STATUS_ALL_STR: str = "all"

# Pull request async merge evaluation (GitPullRequest.merge_status)
MERGE_STATUS_NOT_SET_STR: str = "notSet"
MERGE_STATUS_QUEUED_STR: str = "queued"
MERGE_STATUS_CONFLICTS_STR: str = "conflicts"
MERGE_STATUS_SUCCEEDED_STR: str = "succeeded"
MERGE_STATUS_REJECTED_BY_POLICY_STR: str = "rejectedByPolicy"
MERGE_STATUS_FAILURE_STR: str = "failure"

PROJECT_STATE_WELL_FORMED_STR: str = "wellFormed"

USER_SUBJECT_KIND_STR: str = "User"
GROUP_SUBJECT_KIND_STR: str = "Group"
IDENTITY_SEARCH_FILTER_STR: str = "General"
QUERY_MEMBERSHIP_NONE_STR: str = "none"

IDENTITY_API_LEGACY_STR: str = "legacy"
IDENTITY_API_GRAPH_STR: str = "graph"
IDENTITY_APIS: frozenset[str] = frozenset({IDENTITY_API_LEGACY_STR, IDENTITY_API_GRAPH_STR})

MERGE_STRATEGY_SQUASH_STR: str = "squash"
MERGE_STRATEGIES: frozenset[str] = frozenset({
    "noFastForward",
    MERGE_STRATEGY_SQUASH_STR,
    "rebase",
    "rebaseMerge",
})

# Defaults applied when auto-complete is enabled on a pull request
_AUTO_COMPLETE_DEFAULTS: dict[str, str | bool] = {
    "merge-strategy": MERGE_STRATEGY_SQUASH_STR,
    "delete-source-branch": True,
    "transition-work-items": True,
}
AUTO_COMPLETE_DEFAULTS: Mapping[str, str | bool] = types.MappingProxyType(_AUTO_COMPLETE_DEFAULTS)
