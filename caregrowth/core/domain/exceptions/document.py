"""Document and content acquisition exceptions."""

from .base import CareGrowthError


class DocumentError(CareGrowthError):
    """Base error for document operations."""

    error_code = "CG_DOC_001"


class DocumentNotFoundError(DocumentError):
    """None of the requested documents exist."""

    error_code = "CG_DOC_002"


class ContentFetchError(DocumentError):
    """Document content could not be downloaded.

    Common causes:
    - The document is not shared publicly or with view permission
    - The export endpoint is unreachable
    """

    error_code = "CG_DOC_003"

