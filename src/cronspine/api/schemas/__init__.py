"""API schemas package.

Pydantic schemas define the API contract; routers and ops stay decoupled
from serialisation details.

Doc-Types:
    api-reference
"""

from cronspine.api.schemas.common import (
    ErrorDetail,
    PagedResponse,
    PageMeta,
    ProblemDetail,
    SuccessResponse,
)

__all__ = [
    "ErrorDetail",
    "PageMeta",
    "PagedResponse",
    "ProblemDetail",
    "SuccessResponse",
]
