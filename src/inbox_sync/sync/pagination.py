"""Pagination state for the inbox view."""

from __future__ import annotations

from dataclasses import dataclass

from inbox_sync.exceptions import ValidationError


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed to show ``total`` messages."""

    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return -(-max(total, 0) // page_size)


@dataclass
class Pagination:
    """Current page, page size and the last total reported by the service.

    The page is never clamped when the total shrinks; ``out_of_range`` lets a
    renderer notice that case.
    """

    page: int = 1
    page_size: int = 10
    total: int = 0

    def __post_init__(self) -> None:
        self._check_positive("page", self.page)
        self._check_positive("page_size", self.page_size)

    @property
    def page_count(self) -> int:
        return page_count(self.total, self.page_size)

    @property
    def has_controls(self) -> bool:
        return self.page_count > 1

    @property
    def out_of_range(self) -> bool:
        return self.total > 0 and self.page > self.page_count

    def set_page(self, page: int) -> None:
        self._check_positive("page", page)
        self.page = page

    def set_page_size(self, page_size: int) -> None:
        self._check_positive("page_size", page_size)
        self.page_size = page_size
        self.page = 1

    def apply_total(self, total: int) -> None:
        self.total = total

    def reset(self) -> None:
        """Back to the first page with nothing known about the new listing."""
        self.page = 1
        self.total = 0

    @staticmethod
    def _check_positive(name: str, value: int) -> None:
        if value < 1:
            raise ValidationError(f"{name} must be at least 1, got {value}")
