"""Memory, registers and snapshots for the 4719 processor.

This module defines the storage model of the emulator, following the same
immutable-state approach used for tracing: registers and snapshots are frozen
records, and every register mutation returns a new object.

State Components:
    - Memory: fixed-capacity array of quantized cells (16 cells of 4 bits)
    - Registers: ip (instruction pointer), ss (short-store), r0, r1
    - ProcessorState: OFF, RUNNING, PAUSED, HALTED, CRASHED
    - RunMode: TIMED, STEPPED, GO
    - Snapshot: registers plus a full memory copy, taken once per cycle
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Tuple

from .errors import InvalidValue, OutOfRange, ValueOutOfRange


DEFAULT_MEMORY_SIZE = 16
DEFAULT_BITS = 4

REGISTER_NAMES = ("ip", "ss", "r0", "r1")


def hex_format(value, length: int = 2) -> str:
    """Format a value as zero-padded upper-case hex for messages."""
    if isinstance(value, int) and not isinstance(value, bool):
        return format(value, "X").zfill(length)
    return repr(value)


def is_cell_int(value) -> bool:
    """True for plain integers (bools are rejected)."""
    return isinstance(value, int) and not isinstance(value, bool)


class ProcessorState(Enum):
    """Lifecycle state of the processor."""

    OFF = "off"
    RUNNING = "running"
    PAUSED = "paused"
    HALTED = "halted"
    CRASHED = "crashed"


class RunMode(Enum):
    """Scheduling policy for successive cycles."""
    TIMED = "timed"
    STEPPED = "stepped"
    GO = "go"


class Memory:
    """Fixed-capacity addressable store of quantized cell values.

    Attributes:
        size: Number of cells
        bits: Width of each cell; values live in [0, 2**bits)
        store: Backing list of cell values
    """

    def __init__(self, size: int = DEFAULT_MEMORY_SIZE, bits: int = DEFAULT_BITS):
        self.size = size
        self.bits = bits
        self.store: List[int] = []
        self.clear()

    @property
    def limit(self) -> int:
        """Exclusive upper bound of a cell value."""
        return 2 ** self.bits

    def __len__(self) -> int:
        return self.size

    def clear(self) -> None:
        """Reset every cell to 0."""
        self.store = [0] * self.size

    def read(self, address: int) -> int:
        """Read the value stored at an address.

        Raises:
            InvalidValue: If the address is missing or not an integer, or the
                stored value is outside the cell domain
            OutOfRange: If the address is outside [0, size)
        """
        self._check_address(address, "Read fail")
        value = self.store[address]
        if not is_cell_int(value) or not 0 <= value < self.limit:
            raise InvalidValue(f"Uninitialized memory address {hex_format(address)}")
        return value

    def write(self, address: int, value: int) -> None:
        """Overwrite the cell at an address.

        Raises:
            InvalidValue: If the address or value is missing or not an integer
            OutOfRange: If the address is outside [0, size)
            ValueOutOfRange: If the value is outside [0, 2**bits)
        """
        self._check_address(address, "Write fail")
        if value is None:
            raise InvalidValue(f"Write fail: value is missing at {hex_format(address)}")
        if not is_cell_int(value):
            raise InvalidValue(f"Write fail: value is not a number ({value!r})")
        if not 0 <= value < self.limit:
            raise ValueOutOfRange(
                f"Write fail: Value out of range ({hex_format(value)}) "
                f"not between {hex_format(0)} and {hex_format(self.limit - 1)}"
            )
        self.store[address] = value

    def dump(self) -> Tuple[int, ...]:
        """Immutable copy of all cells, address order."""
        return tuple(self.store)

    def _check_address(self, address, prefix: str) -> None:
        if address is None:
            raise InvalidValue(f"{prefix}: address is missing")
        if not is_cell_int(address):
            raise InvalidValue(f"{prefix}: address is not a number ({address!r})")
        if not 0 <= address < self.size:
            raise OutOfRange(
                f"{prefix}: Address out of range ({hex_format(address)}) "
                f"not between {hex_format(0)} and {hex_format(self.size - 1)}"
            )


@dataclass(frozen=True)
class Registers:
    """Immutable register file.

    Attributes:
        ip: Instruction pointer
        ss: Short-store, latched each cycle with the byte after ip
        r0: General-purpose register 0
        r1: General-purpose register 1
    """
    ip: int = 0
    ss: int = 0
    r0: int = 0
    r1: int = 0

    def get_register(self, name: str) -> int:
        """Get a register by name (case insensitive).

        Raises:
            KeyError: If the register doesn't exist
        """
        key = name.lower()
        if key not in REGISTER_NAMES:
            raise KeyError(f"Invalid register: {name}")
        return getattr(self, key)

    def set_register(self, name: str, value: int) -> "Registers":
        """Create new registers with one slot replaced.

        The value is not range checked here; the processor asserts every
        register at the start of each cycle.

        Raises:
            KeyError: If the register doesn't exist
        """
        key = name.lower()
        if key not in REGISTER_NAMES:
            raise KeyError(f"Invalid register: {name}")
        return replace(self, **{key: value})

    def advance(self, count: int = 1) -> "Registers":
        """Create new registers with ip moved forward by count."""
        return replace(self, ip=self.ip + count)

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in REGISTER_NAMES}

    def __str__(self) -> str:
        return " ".join(f"{name}={hex_format(value)}" for name, value in self.as_dict().items())


@dataclass(frozen=True)
class Snapshot:
    """Registers and full memory captured once per cycle, before dispatch.

    Attributes:
        registers: Register values the cycle dispatched with
        memory: Copy of every memory cell
        cycle: Cycle number (0-indexed since the last reset)
    """
    registers: Registers
    memory: Tuple[int, ...]
    cycle: int = 0
