"""Error hierarchy for the 4719 emulator.

Faults raised inside a processor cycle are caught at the cycle boundary and
turn the processor CRASHED. Faults from direct memory access or from the
assembler propagate to the caller.
"""


class EmulatorError(ValueError):
    """Base class for every emulator fault."""


class OutOfRange(EmulatorError):
    """Address or value outside its legal interval."""


class InvalidValue(EmulatorError):
    """Missing or non-numeric value where a cell value was required."""


class ValueOutOfRange(OutOfRange, InvalidValue):
    """Integer value outside the cell domain [0, 2**bits)."""


class InvalidAddress(OutOfRange):
    """Instruction pointer does not name a memory cell."""


class InvalidMnemonic(InvalidValue):
    """Fetched byte is not a 4-bit mnemonic value."""


class UnknownOpcode(EmulatorError):
    """Fetched byte has no instruction mapped to it."""

    def __init__(self, value):
        super().__init__(f"Instruction not found: {value!r}")
        self.value = value


class AssemblerError(EmulatorError):
    """Source token is neither a mnemonic nor a usable decimal literal."""

    def __init__(self, message: str, token: str, index: int):
        super().__init__(f"{message}: {token!r} (token {index})")
        self.token = token
        self.index = index
