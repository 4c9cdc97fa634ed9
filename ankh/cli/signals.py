"""SIGINT/SIGTERM forwarding.

Outside of interactive prompts a signal is re-delivered to the process with
its default disposition: SIGINT surfaces as ``KeyboardInterrupt`` and
SIGTERM terminates. While a prompt is active (``catch_signals`` is set) a
SIGTERM is held back and delivered once the prompt returns.

SIGINT is never held back, even during a prompt: Ctrl-C at a prompt aborts
the run immediately instead of being absorbed and re-delivered afterwards.
"""

from __future__ import annotations

import os
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType

from loguru import logger


class SignalForwarder:
    """Installs handlers for SIGINT and SIGTERM.

    The only state shared with the rest of the program is ``catch_signals``.
    """

    def __init__(self) -> None:
        self.catch_signals = False
        self._pending: int | None = None

    def install(self) -> None:
        signal.signal(signal.SIGINT, self.handle)
        signal.signal(signal.SIGTERM, self.handle)

    def handle(self, signum: int, frame: FrameType | None) -> None:
        if self.catch_signals and signum != signal.SIGINT:
            logger.debug(f"Deferring signal {signal.Signals(signum).name} until the prompt returns")
            self._pending = signum
            return
        self.forward(signum, frame)

    def forward(self, signum: int, frame: FrameType | None = None) -> None:
        if signum == signal.SIGINT:
            signal.default_int_handler(signum, frame)
            return
        signal.signal(signum, signal.SIG_DFL)
        os.kill(os.getpid(), signum)

    @contextmanager
    def catching(self) -> Iterator[None]:
        """Mark an interactive prompt as active for the duration of the block."""
        self.catch_signals = True
        try:
            yield
        finally:
            self.catch_signals = False
            pending, self._pending = self._pending, None
            if pending is not None:
                self.forward(pending)


forwarder = SignalForwarder()
