"""Cooperative cancellation for long-running pipeline stages.

Stages poll a token between lines and between query chunks.
A token trips on an explicit cancel request or an elapsed deadline.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from core.errors import CancelledError


@dataclass
class CancellationToken:
    """Cancellation flag with an optional wall-clock deadline.

    Attributes:
        timeout_seconds: Optional run budget measured from token creation.
    """

    timeout_seconds: float | None = None
    started_at: float = field(default_factory=time.monotonic)
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        """Request cancellation; safe to call from a signal handler."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return whether cancellation was requested or the deadline passed."""
        if self._event.is_set():
            return True
        if self.timeout_seconds is None:
            return False
        return time.monotonic() - self.started_at >= self.timeout_seconds

    def raise_if_cancelled(self, stage: str) -> None:
        """Raise when the token has tripped.

        Args:
            stage: Pipeline stage name used in the error message.

        Raises:
            CancelledError: If cancellation was requested or timed out.
        """
        if not self.cancelled:
            return
        reason = "cancel requested" if self._event.is_set() else "timeout elapsed"
        raise CancelledError(
            f"Pipeline cancelled during {stage}: {reason}. "
            "Rerun the same command to resume from completed stages."
        )


def check_cancelled(token: CancellationToken | None, stage: str) -> None:
    """Raise if an optional token has tripped."""
    if token is not None:
        token.raise_if_cancelled(stage)
