"""
Simple program to run a saved instruction listing on the stack machine.
INPUT values are read from stdin and PRINT values written to stdout.
"""

from typing import List, Optional

import sys

import milan.bytecode as bc
import milan.vm as vm

DEBUG = False


def _get_filename(argv: List[str]) -> str:
    if len(argv) < 2:
        print("Please provide a listing to run")
        print("Usage:")
        print("$ milanvm <listing file>")
        sys.exit(1)

    listing_file_name = argv[1]
    if DEBUG:
        print(f"listing: {listing_file_name}")
    return listing_file_name


def _read_listing(filename: str) -> List[bc.Instruction]:
    try:
        listing_file = open(filename, "r", encoding="latin-1")
    except OSError:
        print(f"File '{filename}' not found", file=sys.stderr)
        sys.exit(1)

    with listing_file:
        try:
            return bc.read_listing(listing_file.read())
        except bc.ListingError as error:
            print(f"{filename}: {error}", file=sys.stderr)
            sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    """
    The main entry point function.
    """
    if argv is None:
        argv = sys.argv
    listing_file_name = _get_filename(argv)
    instructions = _read_listing(listing_file_name)

    if DEBUG:
        print(f"{len(instructions)} instructions")
    try:
        vm.run_program(instructions)
    except vm.MachineError as error:
        print(f"Runtime error: {error}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":

    main()
