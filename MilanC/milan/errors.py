"""
Definitions for compile errors and tracking/displaying them.
"""

from typing import List

import dataclasses as dc


@dc.dataclass
class SourceView:
    """
    Represents a region within a Milan source string.
    """

    source: str
    start: int
    end: int

    def __str__(self) -> str:
        return self.source[self.start : self.end]

    def source_line(self) -> str:
        """
        Returns the full text of the line this region starts on, without the newline.
        """
        line_start = self.source.rfind("\n", 0, self.start) + 1
        line_end = self.source.find("\n", self.start)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[line_start:line_end]


@dc.dataclass
class CompileError:
    """
    Class representing a compile error, has a message and the line and region of code it was
    found at.
    """

    message: str
    line: int
    region: SourceView
    file_name: str = "<input>"

    def __str__(self) -> str:
        return f"{self.file_name}, line {self.line}: {self.message}"

    def display(self) -> str:
        """
        Display the error along with the offending line, underlining the region.
        """
        # Offset of the region within its line
        column = self.region.start - (
            self.region.source.rfind("\n", 0, self.region.start) + 1
        )
        underline = " " * column + "~" * max(1, self.region.end - self.region.start)
        return f"[ERROR] {self}\n    {self.region.source_line()}\n    {underline}"


@dc.dataclass
class ErrorTracker:
    """
    Wrapper class for keeping track of a list of errors.
    """

    file_name: str = "<input>"
    _errors: List[CompileError] = dc.field(default_factory=list)

    def add(self, message: str, line: int, region: SourceView) -> None:
        """
        Add a new error.
        """
        self._errors.append(CompileError(message, line, region, self.file_name))

    def get(self) -> List[CompileError]:
        """
        Gets the list of errors.
        """
        return self._errors

