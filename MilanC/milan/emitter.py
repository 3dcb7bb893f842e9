"""
This module provides the Emitter class, an append-only list of instructions that supports
reserving slots whose contents (usually jumps) are only known later.
"""

from typing import List, Optional, Set

from milan.bytecode import Instruction, Opcode
from milan.values import DEBUG_EMIT


class ReservationError(Exception):
    """
    Custom exception class raised when the reserve / fill protocol of an Emitter is misused.
    """


class Emitter:
    """
    This class wraps a list of instructions with methods to append to it and to backpatch
    previously reserved addresses.
    """

    def __init__(self) -> None:
        self.code: List[Optional[Instruction]] = []
        self._reserved: Set[int] = set()
        self._filled: Set[int] = set()

    @property
    def current_address(self) -> int:
        """
        The address the next emitted instruction will occupy.
        """
        return len(self.code)

    def emit(self, opcode: Opcode, arg: Optional[int] = None) -> None:
        """
        This function appends a single instruction.
        """
        self.code.append(Instruction(opcode, arg))

    def reserve(self) -> int:
        """
        This function appends an empty slot to be filled later by emit_at, returning its address.
        """
        address = len(self.code)
        if DEBUG_EMIT:
            print(f"Reserving slot {address}")
        self.code.append(None)
        self._reserved.add(address)
        return address

    def emit_at(self, address: int, opcode: Opcode, arg: Optional[int] = None) -> None:
        """
        This function fills a previously reserved slot with an instruction. Each reserved slot
        can be filled exactly once.
        """
        if address not in self._reserved:
            if address in self._filled:
                raise ReservationError(f"slot {address} was already filled")
            raise ReservationError(f"address {address} was never reserved")
        if DEBUG_EMIT:
            print(f"Filling slot {address} with {Instruction(opcode, arg)}")
        self._reserved.remove(address)
        self._filled.add(address)
        self.code[address] = Instruction(opcode, arg)

    def unfilled(self) -> List[int]:
        """
        Returns the reserved addresses which haven't been filled yet, in order.
        """
        return sorted(self._reserved)

    def flush(self) -> List[Instruction]:
        """
        This function returns the list of instructions that has been emitted. Every reserved
        slot must have been filled by now.
        """
        if self._reserved:
            raise ReservationError(f"slots {self.unfilled()} were never filled")
        return [instruction for instruction in self.code if instruction is not None]
