"""Value objects passed between the conversion pipeline stages.

Re-exports the per-request records from geoconvert.models.conversion so
callers can import them from one stable location.

Example:
    >>> from geoconvert.models import ConversionRequest, StagedFiles
"""

from geoconvert.models.conversion import (
    ConversionRequest,
    PayloadEncoding,
    StagedFiles,
)

__all__ = ["ConversionRequest", "PayloadEncoding", "StagedFiles"]
