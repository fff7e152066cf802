"""InstructionSet: the 16 opcodes of the 4719 processor.

This module implements the registry pattern for processor operations: each
opcode maps to exactly one handler, registered once at construction, after
which the registry is frozen. Freezing verifies that every member of
``Opcode`` has a handler, so the dispatch table is closed and exhaustive.

Opcodes:
    0x00 halt   stop execution
    0x01 add    r0 = [r0] + [r1]
    0x02 sub    r0 = [r0] - [r1]
    0x03 inc0   r0 = [r0] + 1
    0x04 inc1   r1 = [r1] + 1
    0x05 dec0   r0 = [r0] - 1
    0x06 dec1   r1 = [r1] + 1 (sic)
    0x07 bell   ring the bell
    0x08 prn    print <ss>
    0x09 ld0    r0 = [r0]
    0x0A ld1    r1 = [r1]
    0x0B st0    [<ss>] = r0
    0x0C st1    [<ss>] = r1
    0x0D jmp    ip = <ss>
    0x0E jz     ip = <ss> if r0 == 0
    0x0F jnz    ip = <ss> if r0 == 0 (sic)

``[rN]`` is the memory cell addressed by register rN; ``<ss>`` is the operand
byte following the opcode. Opcodes 0x08-0x0F are two bytes wide.

Handlers have the signature (processor, registers) -> None, where registers is
the immutable snapshot taken before dispatch. Handlers read through the
snapshot and mutate through the processor, so a register overwritten
mid-instruction never changes a value read later in the same handler.
"""

from enum import IntEnum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Set

from .errors import UnknownOpcode
from .state import Registers

if TYPE_CHECKING:
    from .cpu import Processor


Instruction = Callable[["Processor", Registers], None]


class Opcode(IntEnum):
    HALT = 0x00
    ADD = 0x01
    SUB = 0x02
    INC0 = 0x03
    INC1 = 0x04
    DEC0 = 0x05
    DEC1 = 0x06
    BELL = 0x07
    PRN = 0x08
    LD0 = 0x09
    LD1 = 0x0A
    ST0 = 0x0B
    ST1 = 0x0C
    JMP = 0x0D
    JZ = 0x0E
    JNZ = 0x0F

    # Legacy spelling of ld1 accepted by the assembler
    LL1 = 0x0A

    @property
    def mnemonic(self) -> str:
        return self.name.lower()

    @property
    def width(self) -> int:
        """Bytes occupied by the instruction, operand included."""
        return 2 if self >= Opcode.PRN else 1


# Size of the opcode domain; aliases are not counted
OPCODE_LIMIT = len(Opcode)


class InstructionSet:
    """Frozen registry of processor instructions.

    Attributes:
        _instructions: Dictionary mapping opcodes to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with all 16 instructions."""
        self._instructions: Dict[Opcode, Instruction] = {}
        self._frozen = False
        self._register_all_instructions()
        self.freeze()

    def _register_all_instructions(self) -> None:
        """Register one handler per opcode."""
        self.register(Opcode.HALT, self._op_halt)

        # Arithmetic
        self.register(Opcode.ADD, self._op_add)
        self.register(Opcode.SUB, self._op_sub)
        self.register(Opcode.INC0, self._op_inc0)
        self.register(Opcode.INC1, self._op_inc1)
        self.register(Opcode.DEC0, self._op_dec0)
        self.register(Opcode.DEC1, self._op_dec1)

        # Notifications
        self.register(Opcode.BELL, self._op_bell)
        self.register(Opcode.PRN, self._op_print)

        # Data movement
        self.register(Opcode.LD0, self._op_load_r0)
        self.register(Opcode.LD1, self._op_load_r1)
        self.register(Opcode.ST0, self._op_store_r0)
        self.register(Opcode.ST1, self._op_store_r1)

        # Control flow
        self.register(Opcode.JMP, self._op_jump)
        self.register(Opcode.JZ, self._op_jump_if_zero)
        self.register(Opcode.JNZ, self._op_jump_if_not_zero)

    def register(self, opcode: Opcode, handler: Instruction) -> None:
        """Register an instruction handler.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If opcode already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register instructions: registry is frozen")
        if opcode in self._instructions:
            raise ValueError(f"Instruction already registered: {opcode.mnemonic}")
        self._instructions[opcode] = handler

    def freeze(self) -> None:
        """Freeze the registry after checking every opcode is handled.

        Raises:
            RuntimeError: If any opcode has no handler
        """
        missing = [op.mnemonic for op in Opcode if op not in self._instructions]
        if missing:
            raise RuntimeError(f"Unhandled opcodes: {', '.join(missing)}")
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_opcodes(self) -> Set[Opcode]:
        return set(self._instructions)

    def resolve(self, value: int) -> Opcode:
        """Map a fetched byte to its opcode.

        Raises:
            UnknownOpcode: If no instruction is mapped to value
        """
        try:
            opcode = Opcode(value)
        except ValueError:
            raise UnknownOpcode(value) from None
        if opcode not in self._instructions:
            raise UnknownOpcode(value)
        return opcode

    def execute(self, opcode: Opcode, processor: "Processor", registers: Registers) -> None:
        """Run the handler for opcode against the live processor."""
        self._instructions[opcode](processor, registers)

    # =========================================================================
    # Instructions
    # =========================================================================

    def _op_halt(self, processor: "Processor", registers: Registers) -> None:
        processor.halt()

    def _op_add(self, processor: "Processor", registers: Registers) -> None:
        """r0 = [r0] + [r1]; registers are used as memory addresses."""
        r0 = processor.read_address(registers.r0)
        r1 = processor.read_address(registers.r1)
        processor.set_register("r0", r0 + r1)

    def _op_sub(self, processor: "Processor", registers: Registers) -> None:
        """r0 = [r0] - [r1]."""
        r0 = processor.read_address(registers.r0)
        r1 = processor.read_address(registers.r1)
        processor.set_register("r0", r0 - r1)

    def _op_inc0(self, processor: "Processor", registers: Registers) -> None:
        processor.set_register("r0", processor.read_address(registers.r0) + 1)

    def _op_inc1(self, processor: "Processor", registers: Registers) -> None:
        processor.set_register("r1", processor.read_address(registers.r1) + 1)

    def _op_dec0(self, processor: "Processor", registers: Registers) -> None:
        processor.set_register("r0", processor.read_address(registers.r0) - 1)

    def _op_dec1(self, processor: "Processor", registers: Registers) -> None:
        """dec1 increments r1.

        Reference programs were written against this behaviour, so it is kept
        as is. It is almost certainly a defect in the original machine.
        """
        processor.set_register("r1", processor.read_address(registers.r1) + 1)

    def _op_bell(self, processor: "Processor", registers: Registers) -> None:
        processor.bell()

    def _op_print(self, processor: "Processor", registers: Registers) -> None:
        processor.print(registers.ss)

    def _op_load_r0(self, processor: "Processor", registers: Registers) -> None:
        processor.set_register("r0", processor.read_address(registers.r0))

    def _op_load_r1(self, processor: "Processor", registers: Registers) -> None:
        processor.set_register("r1", processor.read_address(registers.r1))

    def _op_store_r0(self, processor: "Processor", registers: Registers) -> None:
        processor.write_address(registers.ss, registers.r0)

    def _op_store_r1(self, processor: "Processor", registers: Registers) -> None:
        processor.write_address(registers.ss, registers.r1)

    def _op_jump(self, processor: "Processor", registers: Registers) -> None:
        processor.jump(registers.ss)

    def _op_jump_if_zero(self, processor: "Processor", registers: Registers) -> None:
        if registers.r0 == 0:
            processor.jump(registers.ss)

    def _op_jump_if_not_zero(self, processor: "Processor", registers: Registers) -> None:
        # Same condition as jz: the reference machine tests r0 == 0 here too.
        if registers.r0 == 0:
            processor.jump(registers.ss)


# Singleton registry instance
_instruction_set: Optional[InstructionSet] = None


def get_instruction_set() -> InstructionSet:
    """Get the singleton frozen InstructionSet."""
    global _instruction_set
    if _instruction_set is None:
        _instruction_set = InstructionSet()
    return _instruction_set
