"""Custom exception classes for the content management core."""


class CMSException(Exception):
    """
    Base exception class for all CMS errors.
    """
    pass


class PathRequiredError(CMSException):
    """
    Raised when a file handle is requested for an empty path.
    """
    pass


class HandleTypeMismatchError(CMSException):
    """
    Raised when a path component exists but is a file where a directory is expected,
    or the other way around.
    """
    pass


class InvalidFileChangeError(CMSException):
    """
    Raised when a file change violates its invariants, e.g. a move without a previous
    path or a delete carrying data.
    """
    pass


class InvalidSiteConfigError(CMSException):
    """
    Raised when the site configuration cannot be loaded or validated.
    """
    pass


class BackendNotConfiguredError(CMSException):
    """
    Raised when changes are saved with no backend service selected.
    """
    pass


class NotARepositoryError(CMSException):
    """
    Raised when a local directory is not the root of a Git repository.
    """
    pass


class CommitFailedError(CMSException):
    """
    Raised by a backend service when a batch of changes could not be committed.
    """
    pass
