class RepositoryNotInitializedError(Exception):
    """Raised when a repository has no default branch and can not be used."""

    pass


class RepositoryReferenceError(Exception):
    """Raised when a repository reference is not in the `project/repository` form."""

    pass


class NoApiTokenError(Exception):
    """Raised when no personal access token is available for Azure DevOps API operations."""

    pass


class UnsupportedOperationError(Exception):
    """Raised when an operation is not supported by the Azure DevOps service."""

    pass
