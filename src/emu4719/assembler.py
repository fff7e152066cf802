"""Assembler for 4719 mnemonic source.

Source format:
    - whitespace separated tokens, any number per line
    - ``#`` starts a comment that runs to the end of the line
    - each token is a case-insensitive mnemonic (see ``Opcode``) or a
      decimal literal used for operand and data bytes

Example:
    ld0 13      # 0x09 0x0D
    prn 10      # print the byte 10
    halt

Assembly is a straight token-to-byte mapping; there are no labels and no
operand checking, so ``prn`` must be followed by its operand byte by hand.
"""

import re
from typing import Dict, List, Sequence

from .errors import AssemblerError
from .registry import Opcode
from .state import DEFAULT_BITS, hex_format

_COMMENT = re.compile(r"#[^\n]*")
_DECIMAL = re.compile(r"^[0-9]+$")


def tokenize(source: str) -> List[str]:
    """Split source into lowercase tokens with comments removed."""
    stripped = _COMMENT.sub("", source)
    return [token.lower() for token in stripped.split() if token]


def mnemonic_table() -> Dict[str, int]:
    """Mnemonic name to opcode value, aliases included."""
    return {name.lower(): int(opcode) for name, opcode in Opcode.__members__.items()}


def compile(source: str, bits: int = DEFAULT_BITS) -> List[int]:
    """Translate source into a program of cell values.

    Args:
        source: Assembly source text
        bits: Cell width; literals must fit in [0, 2**bits)

    Returns:
        Program bytes, ready for ``Processor.load``

    Raises:
        AssemblerError: If a token is neither a mnemonic nor a decimal literal,
            or a literal does not fit in a cell
    """
    opcodes = mnemonic_table()
    limit = 2 ** bits
    program = []
    for index, token in enumerate(tokenize(source)):
        if token in opcodes:
            program.append(opcodes[token])
            continue
        if not _DECIMAL.match(token):
            raise AssemblerError("Unknown mnemonic", token, index)
        value = int(token)
        if value >= limit:
            raise AssemblerError(f"Literal does not fit in {bits} bits", token, index)
        program.append(value)
    return program


def format_instruction(opcode: int, operand=None) -> str:
    """Render one instruction, e.g. ``prn 10``."""
    try:
        op = Opcode(opcode)
    except ValueError:
        return f"?{hex_format(opcode)}"
    if op.width == 2:
        return f"{op.mnemonic} {operand if operand is not None else '?'}"
    return op.mnemonic


def disassemble(program: Sequence[int]) -> List[str]:
    """Linear listing of a program, one instruction per line.

    Data bytes are decoded as if they were instructions; the listing follows
    the byte stream, not the control flow.

    Returns:
        Lines like ``"00: ld0 13"``
    """
    lines = []
    address = 0
    while address < len(program):
        opcode = program[address]
        try:
            width = Opcode(opcode).width
        except ValueError:
            width = 1
        operand = program[address + 1] if width == 2 and address + 1 < len(program) else None
        lines.append(f"{hex_format(address)}: {format_instruction(opcode, operand)}")
        address += width
    return lines
