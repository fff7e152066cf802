"""Processor: state machine and fetch-decode-execute loop of the 4719 CPU.

Each cycle runs:
    VALIDATE -> FETCH -> RESOLVE -> LATCH ss -> SNAPSHOT -> EXECUTE -> ADVANCE

Pointer policy: the loop owns instruction pointer advancement. Instructions
never move ip forward; after a successful dispatch ip advances by the
opcode's width (1 or 2 bytes) unless the instruction jumped, in which case
ip is exactly the jump target. A cycle that faults still advances ip by one.
"""

import functools
import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

from .assembler import compile, format_instruction
from .errors import InvalidAddress, InvalidMnemonic, InvalidValue
from .hooks import (
    BellHandler,
    PrintHandler,
    Scheduler,
    log_print_handler,
    terminal_bell_handler,
    timer_scheduler,
)
from .registry import OPCODE_LIMIT, InstructionSet, get_instruction_set
from .state import (
    REGISTER_NAMES,
    Memory,
    ProcessorState,
    Registers,
    RunMode,
    Snapshot,
    hex_format,
    is_cell_int,
)

logger = logging.getLogger(__name__)


# action -> states the action may start from
TRANSITIONS = {
    "run": frozenset({ProcessorState.OFF, ProcessorState.HALTED, ProcessorState.PAUSED}),
    "pause": frozenset({ProcessorState.RUNNING}),
    "play_pause": frozenset({
        ProcessorState.RUNNING, ProcessorState.PAUSED,
        ProcessorState.OFF, ProcessorState.HALTED,
    }),
}


class Processor:
    """Emulator of the 4719 4-bit processor.

    The processor exclusively owns its memory and registers. History and the
    output buffer are append-only and handed out as copies.

    Attributes:
        memory: Program and data memory
        registers: Current (immutable) register file
        state: Current ProcessorState
        instruction_set: Frozen opcode registry
        bell_handler: Zero-argument hook called by the bell instruction
        print_handler: One-argument hook called by the print instruction
        scheduler: Defers the next cycle in TIMED mode
        delay: Milliseconds between cycles in TIMED mode
        history_limit: Maximum number of snapshots kept
        max_cycles: Optional cycle budget per run() in GO mode
        cycle_count: Cycles executed since the last reset
    """

    DEFAULT_HISTORY_LIMIT = 100
    DEFAULT_DELAY_MS = 1000

    def __init__(
        self,
        memory: Optional[Memory] = None,
        bell_handler: Optional[BellHandler] = None,
        print_handler: Optional[PrintHandler] = None,
        run_mode: RunMode = RunMode.TIMED,
        delay: float = DEFAULT_DELAY_MS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        max_cycles: Optional[int] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.memory = memory if memory is not None else Memory()
        self.instruction_set: InstructionSet = get_instruction_set()
        self.bell_handler: BellHandler = bell_handler or terminal_bell_handler
        self.print_handler: PrintHandler = print_handler or log_print_handler
        self.scheduler: Scheduler = scheduler or timer_scheduler
        self.delay = delay
        # TIMED cycles run on the scheduler thread
        self._lock = threading.RLock()
        self._history: Deque[Snapshot] = deque(maxlen=history_limit)
        self._history_limit = history_limit
        self.max_cycles = max_cycles
        self._run_mode = run_mode
        self._output: List[int] = []
        self._pending: Any = None
        self._timer_token: Optional[object] = None
        self._jumped = False
        self.reset()

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def run_mode(self) -> RunMode:
        return self._run_mode

    @run_mode.setter
    def run_mode(self, value: RunMode) -> None:
        if self.is_running:
            raise RuntimeError("Cannot change run mode while running")
        self._run_mode = value

    @property
    def history_limit(self) -> int:
        return self._history_limit

    @history_limit.setter
    def history_limit(self, value: int) -> None:
        with self._lock:
            self._history_limit = value
            self._history = deque(self._history, maxlen=value)

    @property
    def is_running(self) -> bool:
        return self.state is ProcessorState.RUNNING

    @property
    def output(self) -> List[int]:
        """Bytes emitted by the print instruction, in emission order."""
        return list(self._output)

    @property
    def history(self) -> List[Snapshot]:
        """Past snapshots, oldest first."""
        return list(self._history)

    def can(self, action: str) -> bool:
        """Whether action is allowed from the current state."""
        return self.state in TRANSITIONS[action]

    def dump_registers(self) -> Dict[str, int]:
        return self.registers.as_dict()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def reset(self) -> None:
        """Return to OFF with fresh registers and no history.

        Memory and the output buffer are left untouched.
        """
        with self._lock:
            self._cancel_pending()
            self._history = deque(maxlen=self._history_limit)
            self.registers = Registers()
            self.cycle_count = 0
            self.state = ProcessorState.OFF

    def load(self, program: Sequence[int]) -> None:
        """Write program bytes into memory starting at address 0.

        Raises:
            OutOfRange: If the program is longer than memory
            InvalidValue: If a byte is not a cell value
        """
        for address, byte in enumerate(program):
            self.memory.write(address, byte)

    def load_source(self, source: str) -> List[int]:
        """Assemble source and load it. Returns the program bytes."""
        program = compile(source, bits=self.memory.bits)
        self.load(program)
        return program

    def run(self) -> bool:
        """Start or resume execution in the configured run mode.

        Returns:
            False (and logs an error) if the processor cannot start from its
            current state, e.g. it is already running or has crashed
        """
        with self._lock:
            if self.is_running:
                logger.error("Processor is already running")
                return False
            if not self.can("run"):
                logger.error("Cannot run from state %s; reset first", self.state.name)
                return False
            self.state = ProcessorState.RUNNING
            self._drive()
            return True

    def resume(self) -> bool:
        """Same as run(); named for resuming from PAUSED."""
        return self.run()

    def pause(self) -> bool:
        with self._lock:
            if not self.can("pause"):
                logger.error("Cannot pause from state %s", self.state.name)
                return False
            self._cancel_pending()
            self.state = ProcessorState.PAUSED
            return True

    def stop(self) -> None:
        with self._lock:
            self._cancel_pending()
            self.state = ProcessorState.OFF

    def play_pause(self) -> None:
        """Front-panel play button: run from any non-crashed state."""
        with self._lock:
            saved_state = self.state
            if self.can("play_pause"):
                self.run()
            logger.info("%s => %s", saved_state.name, self.state.name)

    def step(self) -> bool:
        """Execute exactly one cycle; the external trigger for STEPPED mode.

        Returns:
            False (and logs an error) if the processor is not running
        """
        with self._lock:
            if not self.is_running:
                logger.error("Cannot step: processor is %s", self.state.name)
                return False
            self._tick()
            return True

    # =========================================================================
    # Operations used by instructions
    # =========================================================================

    def read_address(self, address: int) -> int:
        return self.memory.read(address)

    def write_address(self, address: int, value: int) -> None:
        self.memory.write(address, value)

    def set_register(self, name: str, value: int) -> None:
        self.registers = self.registers.set_register(name, value)

    def jump(self, address: int) -> None:
        """Transfer control; the loop will not advance ip this cycle."""
        self.registers = self.registers.set_register("ip", address)
        self._jumped = True

    def halt(self) -> None:
        self.state = ProcessorState.HALTED

    def bell(self) -> None:
        self.bell_handler()

    def print(self, byte: int) -> None:
        self._output.append(byte)
        self.print_handler(byte)

    # =========================================================================
    # Cycle loop
    # =========================================================================

    def _drive(self) -> None:
        """Run cycles according to the run mode after entering RUNNING."""
        if self._run_mode is RunMode.GO:
            executed = 0
            while self.is_running:
                if self.max_cycles is not None and executed >= self.max_cycles:
                    logger.warning("Cycle budget (%d) exhausted; pausing", self.max_cycles)
                    self.state = ProcessorState.PAUSED
                    break
                self._tick()
                executed += 1
        else:
            self._tick()
            if self._run_mode is RunMode.TIMED:
                self._schedule_next()

    def _schedule_next(self) -> None:
        if self.is_running:
            token = object()
            self._timer_token = token
            self._pending = self.scheduler(self.delay, functools.partial(self._on_timer, token))

    def _on_timer(self, token: object) -> None:
        # Host timers cannot be revoked; only the latest one may run a cycle.
        with self._lock:
            if token is not self._timer_token:
                return
            self._timer_token = None
            self._pending = None
            if not self.is_running:
                return
            self._tick()
            self._schedule_next()

    def _cancel_pending(self) -> None:
        self._timer_token = None
        pending, self._pending = self._pending, None
        cancel = getattr(pending, "cancel", None)
        if cancel is not None:
            cancel()

    def _tick(self) -> None:
        """Execute one fetch-decode-execute cycle."""
        with self._lock:
            if not self.is_running:
                return

            advance = 1
            try:
                ip = self.registers.ip
                self._assert_valid_address(ip)
                self._assert_valid_registers()

                value = self.read_address(ip)
                self._assert_valid_mnemonic(value)
                opcode = self.instruction_set.resolve(value)

                # put the byte after the instruction pointer in the short store
                self.registers = self.registers.set_register("ss", self.read_address(ip + 1))
                snapshot = Snapshot(self.registers, self.memory.dump(), self.cycle_count)
                self._history.append(snapshot)

                logger.debug(
                    "[Cycle %d] %s: %s | %s",
                    self.cycle_count, hex_format(ip),
                    format_instruction(opcode, snapshot.registers.ss), snapshot.registers,
                )

                self._jumped = False
                self.instruction_set.execute(opcode, self, snapshot.registers)
                advance = 0 if self._jumped else opcode.width
            except Exception:
                logger.exception("Processor crashed at ip=%s", hex_format(self.registers.ip))
                self.state = ProcessorState.CRASHED
            finally:
                self.registers = self.registers.advance(advance)
                self.cycle_count += 1

    def _assert_valid_address(self, address) -> None:
        if not is_cell_int(address) or not 0 <= address < self.memory.size:
            raise InvalidAddress(f"Invalid memory address: {hex_format(address)}")

    def _assert_valid_registers(self) -> None:
        for name in REGISTER_NAMES:
            value = getattr(self.registers, name)
            if not is_cell_int(value) or not 0 <= value < self.memory.limit:
                raise InvalidValue(f"Register {name} is corrupted ({hex_format(value)})")

    def _assert_valid_mnemonic(self, value) -> None:
        if not is_cell_int(value) or not 0 <= value < OPCODE_LIMIT:
            raise InvalidMnemonic(f"Invalid mnemonic: {hex_format(value)}")

    # =========================================================================
    # Reporting
    # =========================================================================

    def get_summary(self) -> Dict:
        """Execution statistics and final state."""
        return {
            "state": self.state.name,
            "cycles": self.cycle_count,
            "registers": self.dump_registers(),
            "output": self.output,
            "history_length": len(self._history),
        }

    def print_trace(self, out: Optional[Callable[[str], None]] = None) -> None:
        """Print the bounded history in human-readable form.

        Args:
            out: Line sink, defaults to the builtin print
        """
        if out is None:
            out = print
        out("=" * 60)
        out("4719 EXECUTION TRACE")
        out("=" * 60)

        previous = None
        for snapshot in self._history:
            regs = snapshot.registers
            instruction = format_instruction(snapshot.memory[regs.ip], regs.ss)
            out(f"[Cycle {snapshot.cycle}] {hex_format(regs.ip)}: {instruction:<8} {regs}")
            if previous is not None:
                changed = [
                    f"{hex_format(addr)}: {old} -> {new}"
                    for addr, (old, new) in enumerate(zip(previous.memory, snapshot.memory))
                    if old != new
                ]
                if changed:
                    out(f"  Memory: {', '.join(changed)}")
            previous = snapshot

        out("=" * 60)
        out("FINAL STATE")
        out("=" * 60)
        out(f"  State: {self.state.name}")
        out(f"  Registers: {self.registers}")
        out(f"  Cycles: {self.cycle_count}")
        out(f"  Output: {self.output}")
