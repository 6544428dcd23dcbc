from volunteering.stores.interfaces import (
    EventStore,
    NotificationStore,
    RegistrationStore,
    UnitOfWork,
)

__all__ = ["EventStore", "RegistrationStore", "NotificationStore", "UnitOfWork"]
