"""Record types, validation and identity resolution."""
from bulk_transfer_core.records.models import (
    RESOURCES,
    ArticleRecord,
    CommentRecord,
    DomainRecord,
    Resource,
    UserRecord,
)
from bulk_transfer_core.records.validate import validate
from bulk_transfer_core.records.identity import (
    IdentityResolver,
    external_id_of,
    is_external_id,
    to_external,
)

__all__ = [
    "RESOURCES",
    "ArticleRecord",
    "CommentRecord",
    "DomainRecord",
    "Resource",
    "UserRecord",
    "validate",
    "IdentityResolver",
    "external_id_of",
    "is_external_id",
    "to_external",
]
