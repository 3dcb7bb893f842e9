"""
Contains classes/functions for describing Milan stack machine instructions and
converting them to and from the textual listing read by the vm.
"""

from typing import Iterable, List, NamedTuple, Optional

import enum


class ListingError(Exception):
    """
    Custom exception class raised when reading a listing that isn't well formed.
    """


@enum.unique
class Opcode(enum.Enum):
    """
    Enumerates all opcodes of the stack machine.

    __str__ mirrors the mnemonic used in listings.
    """

    STOP = 0
    PUSH = 1
    LOAD = 2
    STORE = 3
    ADD = 4
    SUB = 5
    MULT = 6
    DIV = 7
    INVERT = 8
    AND = 9
    OR = 10
    COMPARE = 11
    DUP = 12
    JUMP = 13
    JUMP_YES = 14
    JUMP_NO = 15
    PRINT = 16
    INPUT = 17

    def __str__(self) -> str:
        return self.name


# Opcodes which take an integer operand.
OPERAND_OPCODES = {
    Opcode.PUSH,
    Opcode.LOAD,
    Opcode.STORE,
    Opcode.COMPARE,
    Opcode.JUMP,
    Opcode.JUMP_YES,
    Opcode.JUMP_NO,
}


@enum.unique
class Cmp(enum.Enum):
    """
    Enumerates the comparison kinds, the value is the operand of OP_COMPARE that represents them.
    """

    EQ = 0
    NE = 1
    LT = 2
    GT = 3
    LE = 4
    GE = 5

    def __str__(self) -> str:
        return {
            Cmp.EQ: "=",
            Cmp.NE: "!=",
            Cmp.LT: "<",
            Cmp.GT: ">",
            Cmp.LE: "<=",
            Cmp.GE: ">=",
        }[self]

    def holds(self, left: int, right: int) -> bool:
        """
        Returns whether the comparison is true for the given operands.
        """
        return {
            Cmp.EQ: left == right,
            Cmp.NE: left != right,
            Cmp.LT: left < right,
            Cmp.GT: left > right,
            Cmp.LE: left <= right,
            Cmp.GE: left >= right,
        }[self]


EQUALITY_CMPS = {Cmp.EQ, Cmp.NE}
RELATIONAL_CMPS = {Cmp.LT, Cmp.LE, Cmp.GT, Cmp.GE}


class Instruction(NamedTuple):
    """
    A single stack machine instruction with its optional operand.
    """

    opcode: Opcode
    arg: Optional[int] = None

    def __str__(self) -> str:
        if self.arg is None:
            return str(self.opcode)
        return f"{self.opcode}\t{self.arg}"


def write_listing(instructions: Iterable[Instruction]) -> str:
    """
    Takes an iterable of instructions and writes the textual listing, one numbered
    instruction per line.
    """
    return "".join(
        f"{address}:\t{instruction}\n" for address, instruction in enumerate(instructions)
    )


def read_listing(listing: str) -> List[Instruction]:
    """
    Parses a textual listing back into a list of instructions. Raises a ListingError if the
    addresses are out of order or an instruction is malformed.
    """
    instructions: List[Instruction] = []
    for line_number, line in enumerate(listing.splitlines(), start=1):
        if not line.strip():
            continue
        address, sep, rest = line.partition(":")
        if not sep or not address.strip().isdigit():
            raise ListingError(f"line {line_number}: expected '<address>:'")
        if int(address) != len(instructions):
            raise ListingError(
                f"line {line_number}: expected address {len(instructions)}, got {address}"
            )
        fields = rest.split()
        if not fields or fields[0] not in Opcode.__members__:
            raise ListingError(f"line {line_number}: unknown instruction {rest.strip()!r}")
        opcode = Opcode[fields[0]]
        if opcode in OPERAND_OPCODES:
            if len(fields) != 2:
                raise ListingError(f"line {line_number}: {opcode} takes one operand")
            try:
                arg = int(fields[1])
            except ValueError:
                raise ListingError(
                    f"line {line_number}: operand {fields[1]!r} isn't an integer"
                )
            instructions.append(Instruction(opcode, arg))
        else:
            if len(fields) != 1:
                raise ListingError(f"line {line_number}: {opcode} takes no operand")
            instructions.append(Instruction(opcode))
    return instructions
