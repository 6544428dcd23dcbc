from typing import TypeVar

from volunteering.domain import EventId, NotificationId, RegistrationId
from volunteering.domain.errors import InvalidIdError

IdT = TypeVar("IdT", EventId, RegistrationId, NotificationId)


def parse_id(id_type: type[IdT], raw: str) -> IdT:
    """Parse a caller-supplied identifier.

    Raises:
        InvalidIdError: If raw is not a valid UUID.
    """
    try:
        return id_type.from_string(str(raw))
    except ValueError:
        raise InvalidIdError() from None
