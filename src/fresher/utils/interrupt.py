"""Interrupt handling shared between the signal handler and the loop.

The first SIGINT/SIGTERM only raises a flag: the current iteration finishes
and the loop stops at the next iteration boundary. A second SIGINT raises
KeyboardInterrupt so a stuck agent can still be abandoned.
"""

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Iterator

import click

logger = logging.getLogger(__name__)


class InterruptFlag:
    """A set-once flag that is safe to set from a signal handler or another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def clear(self) -> None:
        self._event.clear()


@contextmanager
def install_signal_handlers(flag: InterruptFlag) -> Iterator[InterruptFlag]:
    """Route SIGINT/SIGTERM to ``flag`` for the duration of the block.

    Must be entered from the main thread. Previous handlers are restored on
    exit.
    """

    def _handler(signum: int, _frame: object) -> None:
        sig_name = signal.Signals(signum).name
        if flag.is_set() and signum == signal.SIGINT:
            logger.warning(f"Caught second {sig_name}, stopping now")
            raise KeyboardInterrupt
        flag.set()
        logger.info(f"Caught {sig_name}, will stop after the current iteration")
        click.secho(
            "\nReceived interrupt, finishing current iteration... "
            "(press Ctrl+C again to stop immediately)",
            fg="yellow",
        )

    previous = {
        signal.SIGINT: signal.signal(signal.SIGINT, _handler),
        signal.SIGTERM: signal.signal(signal.SIGTERM, _handler),
    }
    try:
        yield flag
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
