from __future__ import annotations

from typing import Iterable


class ValidationError(ValueError):
    """Malformed or missing input, rejected before anything is computed or written."""


class NotFound(LookupError):
    """A referenced batch, item or product id does not exist."""


class SoldItemsProtected(ValidationError):
    """
    Raised when removing batch items whose product has already sold.

    Callers confirm with the user and resubmit with force=True.
    """

    def __init__(self, item_ids: Iterable[int]):
        self.item_ids = [int(i) for i in item_ids]
        self.count = len(self.item_ids)
        noun = "item has" if self.count == 1 else "items have"
        super().__init__(
            f"{self.count} {noun} already been sold. "
            "Removing them will not affect existing sales."
        )
