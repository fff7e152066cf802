"""emu4719: Emulator for the fictional 4719 4-bit processor.

The 4719 is the teaching CPU from Richard Buckland's Higher Computing
lectures: sixteen 4-bit memory cells, four registers and sixteen opcodes.
This package emulates its fetch-decode-execute cycle and ships a tiny
assembler for its mnemonics.

Architecture:
    SOURCE -> ASSEMBLER -> BYTES -> MEMORY -> FETCH -> RESOLVE -> EXECUTE
                                      |                            |
                                  [16 x 4-bit]            [Snapshot history]

Modules:
    state: Memory, Registers, Snapshot and the processor state enums
    registry: Opcode enumeration and the frozen InstructionSet
    hooks: Bell/print notification hooks and the timed-mode scheduler
    assembler: tokenize, compile and disassemble
    cpu: Processor state machine and cycle loop
    errors: Emulator fault hierarchy
"""

__version__ = "0.1.0"

from .assembler import compile, disassemble, tokenize
from .cpu import Processor
from .errors import (
    AssemblerError,
    EmulatorError,
    InvalidAddress,
    InvalidMnemonic,
    InvalidValue,
    OutOfRange,
    UnknownOpcode,
    ValueOutOfRange,
)
from .hooks import ManualScheduler, RecordingHooks
from .registry import InstructionSet, Opcode
from .state import Memory, ProcessorState, Registers, RunMode, Snapshot

__all__ = [
    "Processor",
    "Memory",
    "Registers",
    "Snapshot",
    "ProcessorState",
    "RunMode",
    "InstructionSet",
    "Opcode",
    "RecordingHooks",
    "ManualScheduler",
    "tokenize",
    "compile",
    "disassemble",
    "EmulatorError",
    "OutOfRange",
    "InvalidValue",
    "ValueOutOfRange",
    "InvalidAddress",
    "InvalidMnemonic",
    "UnknownOpcode",
    "AssemblerError",
]
