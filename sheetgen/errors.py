from __future__ import annotations

from typing import Iterable


class SheetError(Exception):
    """Base class for failures reported back to the uploader."""

    status_code = 400

    def __init__(self, messages: str | Iterable[str]):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class InputError(SheetError):
    pass


class PackingError(SheetError):
    status_code = 500


class PackagingError(SheetError):
    status_code = 500
