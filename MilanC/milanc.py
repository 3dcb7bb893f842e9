"""
Simple program to interface with the translator.
Given a source file name, it loads the file, translates it,
and prints the listing of stack machine instructions.
"""

from typing import Iterable, List, Optional

import sys

import milan.errors as er
import milan.bytecode as bc
import milan.parser as ps

DEBUG = False


def _get_filename(argv: List[str]) -> str:
    if len(argv) < 2:
        print("Please provide a file to translate")
        print("Usage:")
        print("$ milanc <input file>")
        sys.exit(1)

    source_file_name = argv[1]
    if DEBUG:
        print(f"src: {source_file_name}")
    return source_file_name


def _read_source(filename: str) -> str:
    try:
        # Each byte is one character, so stray bytes lex as illegal symbols
        source_file = open(filename, "r", encoding="latin-1")
    except OSError:
        print(f"File '{filename}' not found", file=sys.stderr)
        sys.exit(1)

    with source_file:
        return source_file.read()


def _check_errors(errors: Iterable[er.CompileError]) -> None:
    errors = list(errors)
    for error in errors:
        print(error.display() if DEBUG else error, file=sys.stderr)
    if errors:
        sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    """
    The main entry point function.
    """
    if argv is None:
        argv = sys.argv
    source_file_name = _get_filename(argv)
    source = _read_source(source_file_name)

    code, errors = ps.translate_source(source, source_file_name)
    _check_errors(errors)

    if DEBUG:
        print(f"{len(code)} instructions")
    sys.stdout.write(bc.write_listing(code))


if __name__ == "__main__":

    main()
