"""Notification hooks and scheduling for the 4719 processor.

The processor never talks to a terminal, speaker or event loop directly.
The embedding application supplies:

    bell_handler()       called by the bell instruction
    print_handler(byte)  called by the print instruction
    scheduler(delay_ms, callback) -> handle
                         used in TIMED mode to defer the next cycle; the
                         handle may expose cancel()

The defaults below are good enough for a terminal session. RecordingHooks is
the drop-in used by tests and by the demo.
"""

import logging
import sys
import threading
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


BellHandler = Callable[[], None]
PrintHandler = Callable[[int], None]
Scheduler = Callable[[float, Callable[[], None]], Any]


def terminal_bell_handler() -> None:
    """Ring the terminal bell; playback failures are logged and ignored."""
    try:
        sys.stdout.write("\a")
        sys.stdout.flush()
    except (OSError, ValueError) as e:
        logger.warning("4719 BELL: could not play sound (%s)", e)
    else:
        logger.info("4719 BELL sounded")


def log_print_handler(byte: int) -> None:
    logger.info("4719 %s", byte)


def timer_scheduler(delay_ms: float, callback: Callable[[], None]) -> threading.Timer:
    """Run callback once after delay_ms on a daemon timer thread."""
    timer = threading.Timer(delay_ms / 1000.0, callback)
    timer.daemon = True
    timer.start()
    return timer


class RecordingHooks:
    """Bell and print handlers that only record their calls.

    Attributes:
        bells: Number of times the bell rang
        printed: Bytes passed to the print handler, in order
    """

    def __init__(self):
        self.bells = 0
        self.printed: List[int] = []

    def bell(self) -> None:
        self.bells += 1

    def print(self, byte: int) -> None:
        self.printed.append(byte)


class ManualScheduler:
    """Scheduler that queues callbacks until fire() is called.

    Lets TIMED mode be driven deterministically without real timers.
    """

    class Handle:
        def __init__(self, delay_ms: float, callback: Callable[[], None]):
            self.delay_ms = delay_ms
            self.callback = callback
            self.cancelled = False

        def cancel(self) -> None:
            self.cancelled = True

    def __init__(self):
        self.pending: List["ManualScheduler.Handle"] = []

    def __call__(self, delay_ms: float, callback: Callable[[], None]) -> "ManualScheduler.Handle":
        handle = ManualScheduler.Handle(delay_ms, callback)
        self.pending.append(handle)
        return handle

    def fire(self) -> bool:
        """Run the oldest queued callback, cancelled or not.

        Cancelled callbacks still run, the way a host timer that cannot be
        revoked would; the processor must ignore them on its own.

        Returns:
            False if nothing was queued
        """
        if not self.pending:
            return False
        handle = self.pending.pop(0)
        handle.callback()
        return True
