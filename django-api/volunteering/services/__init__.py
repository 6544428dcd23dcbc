from volunteering.services.coordinator import Lifecycle, LifecycleCoordinator, build_lifecycle
from volunteering.services.event_service import EventDraft

__all__ = ["Lifecycle", "LifecycleCoordinator", "EventDraft", "build_lifecycle"]
