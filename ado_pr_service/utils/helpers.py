from __future__ import annotations

import os
from collections.abc import Awaitable, Callable, Iterable
from logging import Logger
from typing import Any, TypeVar

from simple_logger.logger import get_logger

from ado_pr_service.libs.config import Config
from ado_pr_service.libs.exceptions import RepositoryReferenceError
from ado_pr_service.utils.constants import BRANCH_REF_PREFIX, REF_PREFIX

T = TypeVar("T")


def get_logger_with_params(config: Config | None = None) -> Logger:
    mask_sensitive_patterns: list[str] = [
        "password",
        "secret",
        "token",
        "pat-token",
        "pat_token",
        "AZURE_DEVOPS_TOKEN",
        "authorization",
        "apikey",
        "api_key",
    ]

    _config = config or Config()

    log_level: str = _config.get_value(value="log-level", return_on_none="INFO")
    log_file: str = _config.get_value(value="log-file")
    mask_sensitive: bool = _config.get_value(value="mask-sensitive-data", return_on_none=True)

    if log_file and not log_file.startswith("/"):
        log_file_path = os.path.join(_config.data_dir, "logs")

        if not os.path.isdir(log_file_path):
            os.makedirs(log_file_path, exist_ok=True)

        log_file = os.path.join(log_file_path, log_file)

    # One logger per log file so a single handler owns the file rotation
    logger_cache_key = os.path.basename(log_file) if log_file else "console"

    return get_logger(
        name=logger_cache_key,
        filename=log_file,
        level=log_level,
        file_max_bytes=1024 * 1024 * 10,
        mask_sensitive=mask_sensitive,
        mask_sensitive_patterns=mask_sensitive_patterns,
        console=True,
    )


def prepare_log_prefix(base_url: str) -> str:
    return f"[ADO {base_url}]"


def branch_ref(branch_name: str) -> str:
    """
    Full git ref of a branch.

    Examples:
        >>> branch_ref("main")
        'refs/heads/main'
    """
    return f"{BRANCH_REF_PREFIX}{branch_name}"


def strip_branch_ref(ref: str) -> str:
    """
    Short branch name of a full ref, refs that are not branches are returned unchanged.

    Examples:
        >>> strip_branch_ref("refs/heads/feature/x")
        'feature/x'
    """
    if ref.startswith(BRANCH_REF_PREFIX):
        return ref[len(BRANCH_REF_PREFIX) :]

    return ref


def ref_filter(ref: str) -> str:
    """Ref name in the form the refs API filters on (`heads/main` for `refs/heads/main`)."""
    if ref.startswith(REF_PREFIX):
        return ref[len(REF_PREFIX) :]

    return ref


def parse_repository_reference(
    projects: Iterable[str], repositories: Iterable[str], logger: Logger | None = None
) -> dict[str, list[str]]:
    """
    Build the per-project repository allow-list.

    Args:
        projects: Project names, every repository of these projects is wanted
        repositories: `project/repository` references

    Returns:
        Mapping of project name to wanted repository names, an empty list means all repositories

    Raises:
        RepositoryReferenceError: If a reference is not in the `project/repository` form
    """
    parsed: dict[str, list[str]] = {}

    for repository in repositories:
        split = repository.split("/")
        if len(split) != 2 or not all(split):
            raise RepositoryReferenceError(f"could not parse repository reference: {repository}")

        project_name, repository_name = split
        parsed.setdefault(project_name, []).append(repository_name)

    for project in projects:
        parsed.setdefault(project, [])

    if logger:
        logger.debug(f"Parsed repository references: {parsed}")

    return parsed


async def reconcile(
    existing_keys: Iterable[str],
    desired: Iterable[T],
    key: Callable[[T], str],
    create: Callable[[T], Awaitable[Any]],
    delete: Callable[[str], Awaitable[Any]],
    logger: Logger,
    log_prefix: str,
    kind: str,
) -> dict[str, bool]:
    """
    Converge an existing set of items to the desired one.

    Every existing key starts as not kept. Desired items already present are kept,
    missing ones are created and kept. Keys still not kept at the end are deleted.
    A failing create or delete is logged and the remaining items are still processed.

    Args:
        existing_keys: Keys of the items currently on the provider
        desired: Items that should exist
        key: Returns the key of a desired item
        create: Creates a desired item on the provider
        delete: Deletes an item by key on the provider
        logger: Logger instance
        log_prefix: Prefix for log messages
        kind: Item kind for log messages (e.g. "label", "reviewer")

    Returns:
        Mapping of key to whether it was kept
    """
    to_keep: dict[str, bool] = dict.fromkeys(existing_keys, False)

    for item in desired:
        item_key = key(item)
        if item_key in to_keep:
            to_keep[item_key] = True
            continue

        try:
            await create(item)
            logger.info(f"{log_prefix} Added {kind} {item_key}")
        except Exception as ex:
            logger.warning(f"{log_prefix} Failed to add {kind} {item_key}: {ex}")

        to_keep[item_key] = True

    logger.debug(f"{log_prefix} Action over {kind}s: {to_keep}")

    for item_key, keep in to_keep.items():
        if keep:
            continue

        try:
            await delete(item_key)
            logger.info(f"{log_prefix} Removed {kind} {item_key}")
        except Exception as ex:
            logger.warning(f"{log_prefix} Failed to remove {kind} {item_key}: {ex}")

    return to_keep
