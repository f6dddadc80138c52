"""Mapping between external identifiers and internal sequential ids."""
from typing import Any

from bulk_transfer_core.util.errors import ForeignKeyViolation, InvalidReferenceError

EXTERNAL_ID_SEPARATOR = "-"


def is_external_id(value: Any) -> bool:
    """Whether a reference looks like a foreign-system identifier (e.g. a UUID)."""
    return isinstance(value, str) and EXTERNAL_ID_SEPARATOR in value


def external_id_of(identifier: Any) -> str | None:
    """External id to persist for a record's own identifier, if it has one."""
    return identifier.strip() if is_external_id(identifier) else None


def to_external(internal_id: int, external_id: str | None) -> int | str:
    """Prefer the external identifier when exporting a reference."""
    return external_id or internal_id


class IdentityResolver:
    """Resolves record references to internal ids for one import run.

    Integers (and digit-only strings) are taken as internal ids without a
    store round-trip. Strings containing a separator are looked up against the
    referenced table's external id index. Hits are memoised for the life of
    the resolver.
    """

    def __init__(self, store):
        self._store = store
        self._cache: dict[tuple[str, str], int] = {}

    async def resolve(self, reference: Any, field: str, resource: str) -> int:
        """Resolve ``reference`` (found in ``field``) to an internal id of ``resource``."""
        if isinstance(reference, bool):
            raise InvalidReferenceError(field, reference)
        if isinstance(reference, int):
            return reference
        if not isinstance(reference, str):
            raise InvalidReferenceError(field, reference)

        text = reference.strip()
        if is_external_id(text):
            key = (resource, text)
            if key in self._cache:
                return self._cache[key]
            internal_id = await self._store.find_id_by_external_id(resource, text)
            if internal_id is None:
                raise ForeignKeyViolation.missing_external_id(field, text, resource)
            self._cache[key] = internal_id
            return internal_id
        if text.isdigit():
            return int(text)
        raise InvalidReferenceError(field, reference)
