"""
Cooperative cancellation for long-running extraction and inference calls.
"""

import threading
from typing import Optional

from gsstudio.errors import OperationCancelled


class CancellationToken:
    """
    Flag shared between the caller and a running operation.

    Operations check the token at subprocess spawn and at each inference
    call boundary; a call already in progress is not interrupted.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: Optional[str] = None):
        if self._event.is_set():
            raise OperationCancelled("Operation was cancelled", stage=stage)


def check_cancelled(token: Optional[CancellationToken], stage: str):
    """Raise OperationCancelled if ``token`` is set; ``None`` never cancels."""
    if token is not None:
        token.raise_if_cancelled(stage)
