"""Engine settings read from the ``VOLUNTEERING`` dict in Django settings."""

from dataclasses import dataclass, fields
from typing import Self

from django.conf import settings


@dataclass(frozen=True)
class LifecycleSettings:
    """Tunables of the lifecycle engine.

    Attributes:
        auto_approve_registrations: New registrations skip PENDING and take a
            seat immediately.
        submit_queues_for_review: Submitting a draft puts it straight into
            PENDING_APPROVAL instead of SUBMITTED.
        max_conflict_retries: Attempts the coordinator makes when an
            optimistic-concurrency check fails.
        default_page_size: Page size for listings when none is requested.
        max_page_size: Upper bound on a requested page size.
        managers_group: Django auth group whose members act as MANAGER.
    """

    auto_approve_registrations: bool = False
    submit_queues_for_review: bool = True
    max_conflict_retries: int = 3
    default_page_size: int = 20
    max_page_size: int = 100
    managers_group: str = "managers"

    def __post_init__(self) -> None:
        if self.max_conflict_retries < 1:
            raise ValueError("MAX_CONFLICT_RETRIES must be at least 1")
        if not 0 < self.default_page_size <= self.max_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")

    @classmethod
    def from_django(cls) -> Self:
        overrides = getattr(settings, "VOLUNTEERING", {})
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in overrides.items():
            name = key.lower()
            if name not in known:
                raise ValueError(f"Unknown VOLUNTEERING setting: {key}")
            values[name] = value
        return cls(**values)

    def clamp_page(self, page: int | None, page_size: int | None) -> tuple[int, int]:
        """Return a valid (page, page_size) pair; pages are 1-based."""
        page = max(page or 1, 1)
        size = page_size or self.default_page_size
        return page, min(max(size, 1), self.max_page_size)
