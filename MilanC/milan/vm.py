"""
This module provides a Machine class which executes Milan stack machine instructions.
"""

from typing import Callable, Dict, List, Optional, Sequence, TextIO

import collections
import sys

from milan.bytecode import Cmp, Instruction, Opcode
from milan.values import DEBUG


class MachineError(Exception):
    """
    Custom exception class raised when the machine can't carry on executing.
    """


class Machine:
    """
    A stack machine with integer memory cells, reading INPUT values from one stream and
    writing PRINT values to another.
    """

    def __init__(
        self,
        instructions: Sequence[Instruction],
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
    ) -> None:
        self.instructions = instructions
        self.input_stream = sys.stdin if input_stream is None else input_stream
        self.output_stream = sys.stdout if output_stream is None else output_stream
        self.stack: List[int] = []
        self.memory: Dict[int, int] = collections.defaultdict(int)
        self.ip = 0
        self.steps = 0
        self._pending_input: List[str] = []
        self._operations: Dict[Opcode, Callable[[Optional[int]], None]] = {
            Opcode.PUSH: lambda arg: self.push(arg),
            Opcode.LOAD: lambda arg: self.push(self.memory[arg]),
            Opcode.STORE: self._store,
            Opcode.ADD: lambda _: self._binary(lambda left, right: left + right),
            Opcode.SUB: lambda _: self._binary(lambda left, right: left - right),
            Opcode.MULT: lambda _: self._binary(lambda left, right: left * right),
            Opcode.DIV: lambda _: self._binary(_divide),
            Opcode.AND: lambda _: self._binary(lambda left, right: left & right),
            Opcode.OR: lambda _: self._binary(lambda left, right: left | right),
            Opcode.INVERT: lambda _: self.push(-self.pop()),
            Opcode.COMPARE: self._compare,
            Opcode.DUP: self._dup,
            Opcode.JUMP: self._jump,
            Opcode.JUMP_YES: lambda arg: self._jump_if(arg, True),
            Opcode.JUMP_NO: lambda arg: self._jump_if(arg, False),
            Opcode.PRINT: lambda _: self.output_stream.write(f"{self.pop()}\n"),
            Opcode.INPUT: lambda _: self.push(self._read()),
        }

    def push(self, value: int) -> None:
        """
        Pushes a value onto the stack.
        """
        self.stack.append(value)

    def pop(self) -> int:
        """
        Pops a value off the stack, raising a MachineError if it's empty.
        """
        if not self.stack:
            raise MachineError(f"stack underflow at {self.ip - 1}")
        return self.stack.pop()

    def _store(self, arg: Optional[int]) -> None:
        self.memory[arg] = self.pop()

    def _binary(self, operation: Callable[[int, int], int]) -> None:
        right = self.pop()
        left = self.pop()
        self.push(operation(left, right))

    def _compare(self, arg: Optional[int]) -> None:
        try:
            cmp = Cmp(arg)
        except ValueError:
            raise MachineError(f"unknown comparison {arg} at {self.ip - 1}")
        self._binary(lambda left, right: int(cmp.holds(left, right)))

    def _dup(self, _: Optional[int]) -> None:
        value = self.pop()
        self.push(value)
        self.push(value)

    def _jump(self, arg: Optional[int]) -> None:
        if arg is None or not 0 <= arg <= len(self.instructions):
            raise MachineError(f"jump to {arg} out of range at {self.ip - 1}")
        self.ip = arg

    def _jump_if(self, arg: Optional[int], condition: bool) -> None:
        if (self.pop() != 0) == condition:
            self._jump(arg)

    def _read(self) -> int:
        while not self._pending_input:
            line = self.input_stream.readline()
            if not line:
                raise MachineError("end of input reached while reading a value")
            self._pending_input = line.split()
        word = self._pending_input.pop(0)
        try:
            return int(word)
        except ValueError:
            raise MachineError(f"expected an integer as input, got {word!r}")

    def run(self, max_steps: Optional[int] = None) -> None:
        """
        Executes instructions from the current address until reaching STOP. If max_steps is
        given raises a MachineError once that many instructions have been executed.
        """
        while True:
            if not 0 <= self.ip < len(self.instructions):
                raise MachineError(f"ran off the end of the program at {self.ip}")
            if max_steps is not None and self.steps >= max_steps:
                raise MachineError(f"gave up after {max_steps} steps")
            instruction = self.instructions[self.ip]
            if DEBUG:
                print(f"{self.ip:04} {str(instruction):16} {self.stack}")
            self.ip += 1
            self.steps += 1
            if instruction.opcode == Opcode.STOP:
                return
            self._operations[instruction.opcode](instruction.arg)


def _divide(left: int, right: int) -> int:
    if right == 0:
        raise MachineError("division by zero")
    # Truncate towards zero rather than flooring
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def run_program(
    instructions: Sequence[Instruction],
    input_stream: Optional[TextIO] = None,
    output_stream: Optional[TextIO] = None,
    max_steps: Optional[int] = None,
) -> Machine:
    """
    Runs a list of instructions to completion on a fresh machine and returns the machine.
    """
    machine = Machine(instructions, input_stream, output_stream)
    machine.run(max_steps)
    return machine
