"""
Tests for the code emitted by the translator and for its error reporting.
"""

import io

import pytest

from milan.bytecode import Cmp, Instruction, Opcode
from milan.lexer import Lexer
from milan.parser import Translator, translate_source
from milan.vm import run_program

I = Instruction
NE = Cmp.NE.value


def translate(source):
    translator = Translator(Lexer(source))
    translator.parse()
    return translator


def code_of(source):
    code, errors = translate_source(source)
    assert errors == []
    return code


def run(source, given=""):
    output = io.StringIO()
    run_program(code_of(source), io.StringIO(given), output, max_steps=10000)
    return output.getvalue().split()


VALID_PROGRAMS = [
    "begin end",
    "begin write(1+2*3) end",
    "begin x:=1; while x<5 do x:=x+1 od; write(x) end",
    "begin if read()>0 then write(1) else write(0) fi end",
    "begin if 1 then else fi; while 0 do od end",
    "begin a := 1 || 0 && 2; if a then write(a) fi end",
]


class TestExpressions:
    """Instructions emitted for expressions."""

    def test_precedence_of_arithmetic(self):
        assert code_of("begin write(1+2*3) end") == [
            I(Opcode.PUSH, 1),
            I(Opcode.PUSH, 2),
            I(Opcode.PUSH, 3),
            I(Opcode.MULT),
            I(Opcode.ADD),
            I(Opcode.PRINT),
            I(Opcode.STOP),
        ]

    def test_left_associative(self):
        assert code_of("begin write(8-2-1) end")[:5] == [
            I(Opcode.PUSH, 8),
            I(Opcode.PUSH, 2),
            I(Opcode.SUB),
            I(Opcode.PUSH, 1),
            I(Opcode.SUB),
        ]
        assert run("begin write(8-2-1); write(8/2/2) end") == ["5", "2"]

    def test_comparison_binds_tighter_than_bitwise(self):
        assert code_of("begin write(1 + 2 = 3 & 4 > 3) end") == [
            I(Opcode.PUSH, 1),
            I(Opcode.PUSH, 2),
            I(Opcode.ADD),
            I(Opcode.PUSH, 3),
            I(Opcode.COMPARE, Cmp.EQ.value),
            I(Opcode.PUSH, 4),
            I(Opcode.PUSH, 3),
            I(Opcode.COMPARE, Cmp.GT.value),
            I(Opcode.AND),
            I(Opcode.PRINT),
            I(Opcode.STOP),
        ]

    def test_bitwise_or_is_lower_than_bitwise_and(self):
        # 4 | (2 & 1), not (4 | 2) & 1
        assert run("begin write(4 | 2 & 1); write(6 & 3) end") == ["4", "2"]

    def test_relational_inside_equality(self):
        assert run("begin write(1 < 2 = 1); write(2 >= 3 != 0) end") == ["1", "0"]

    def test_factors(self):
        assert code_of("begin x := -y + !0 + true - false end") == [
            I(Opcode.LOAD, 1),
            I(Opcode.INVERT),
            I(Opcode.PUSH, 0),
            I(Opcode.PUSH, 0),
            I(Opcode.COMPARE, Cmp.EQ.value),
            I(Opcode.ADD),
            I(Opcode.PUSH, 1),
            I(Opcode.ADD),
            I(Opcode.PUSH, 0),
            I(Opcode.SUB),
            I(Opcode.STORE, 0),
            I(Opcode.STOP),
        ]

    def test_read_with_and_without_parens(self):
        assert code_of("begin x := read; y := read() end") == [
            I(Opcode.INPUT),
            I(Opcode.STORE, 0),
            I(Opcode.INPUT),
            I(Opcode.STORE, 1),
            I(Opcode.STOP),
        ]

    def test_parentheses(self):
        assert run("begin write((1+2)*3); write(-(2-5)) end") == ["9", "3"]


class TestShortCircuit:
    """The DUP / conditional jump encoding of || and &&."""

    def test_or_layout(self):
        assert code_of("begin write(1 || 0) end") == [
            I(Opcode.PUSH, 1),
            I(Opcode.DUP),
            I(Opcode.JUMP_YES, 5),
            I(Opcode.PUSH, 0),
            I(Opcode.OR),
            I(Opcode.PUSH, 0),
            I(Opcode.COMPARE, NE),
            I(Opcode.PRINT),
            I(Opcode.STOP),
        ]

    def test_and_layout(self):
        assert code_of("begin write(2 && 1) end") == [
            I(Opcode.PUSH, 2),
            I(Opcode.PUSH, 0),
            I(Opcode.COMPARE, NE),
            I(Opcode.DUP),
            I(Opcode.JUMP_NO, 9),
            I(Opcode.PUSH, 1),
            I(Opcode.PUSH, 0),
            I(Opcode.COMPARE, NE),
            I(Opcode.AND),
            I(Opcode.PUSH, 0),
            I(Opcode.COMPARE, NE),
            I(Opcode.PRINT),
            I(Opcode.STOP),
        ]

    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("0 || 0", "0"),
            ("0 || 7", "1"),
            ("5 || 0", "1"),
            ("-3 || 4", "1"),
            ("0 && 1", "0"),
            ("3 && 0", "0"),
            ("2 && 1", "1"),
            ("0 || 0 || 2", "1"),
            ("1 && 2 && 0", "0"),
            ("0 && 1 || 1", "1"),
        ],
    )
    def test_results_are_zero_or_one(self, expression, expected):
        assert run(f"begin write({expression}) end") == [expected]

    def test_or_skips_right_operand(self):
        # With no input available, evaluating the read would fail
        assert run("begin write(1 || read) end") == ["1"]

    def test_and_skips_right_operand(self):
        assert run("begin write(0 && read) end") == ["0"]

    def test_right_operand_evaluated_when_needed(self):
        assert run("begin write(0 || read); write(1 && read) end", "9 0") == ["1", "0"]

    def test_stack_is_balanced(self):
        code = code_of("begin x := 1 || read; y := 0 && read end")
        output = io.StringIO()
        machine = run_program(code, io.StringIO(""), output)
        assert machine.stack == []
        assert machine.memory[0] == 1
        assert machine.memory[1] == 0


class TestStatements:
    """Instructions emitted for statements and the backpatched jumps."""

    def test_empty_program(self):
        assert code_of("begin end") == [I(Opcode.STOP)]

    def test_while(self):
        code = code_of("begin x:=1; while x<5 do x:=x+1 od; write(x) end")
        assert code == [
            I(Opcode.PUSH, 1),
            I(Opcode.STORE, 0),
            I(Opcode.LOAD, 0),
            I(Opcode.PUSH, 5),
            I(Opcode.COMPARE, Cmp.LT.value),
            I(Opcode.JUMP_NO, 11),
            I(Opcode.LOAD, 0),
            I(Opcode.PUSH, 1),
            I(Opcode.ADD),
            I(Opcode.STORE, 0),
            I(Opcode.JUMP, 2),
            I(Opcode.LOAD, 0),
            I(Opcode.PRINT),
            I(Opcode.STOP),
        ]
        # The loop goes back to the LOAD of the condition
        assert code[code[10].arg] == I(Opcode.LOAD, 0)
        assert run("begin x:=1; while x<5 do x:=x+1 od; write(x) end") == ["5"]

    def test_if_else(self):
        source = "begin if read()>0 then write(1) else write(0) fi end"
        assert code_of(source) == [
            I(Opcode.INPUT),
            I(Opcode.PUSH, 0),
            I(Opcode.COMPARE, Cmp.GT.value),
            I(Opcode.JUMP_NO, 7),
            I(Opcode.PUSH, 1),
            I(Opcode.PRINT),
            I(Opcode.JUMP, 9),
            I(Opcode.PUSH, 0),
            I(Opcode.PRINT),
            I(Opcode.STOP),
        ]
        assert run(source, "3") == ["1"]
        assert run(source, "-2") == ["0"]
        assert run(source, "0") == ["0"]

    def test_if_without_else(self):
        code = code_of("begin x:=0; if x=0 then x:=5 fi; write(x) end")
        assert code[5] == I(Opcode.JUMP_NO, 8)
        # Jumps to just past the last instruction of the then block
        assert code[7] == I(Opcode.STORE, 0)
        assert run("begin x:=0; if x=0 then x:=5 fi; write(x) end") == ["5"]
        assert run("begin x:=1; if x=0 then x:=5 fi; write(x) end") == ["1"]

    def test_nested(self):
        source = """
        begin
            n := read;
            f := 1;
            while n > 1 do
                if n / 2 * 2 = n then
                    write(n)
                fi;
                f := f * n;
                n := n - 1
            od;
            write(f)
        end
        """
        assert run(source, "5") == ["4", "2", "120"]

    def test_empty_blocks(self):
        assert run("begin if 1 then else fi; while 0 do od; write(3) end") == ["3"]

    def test_trailing_semicolon_before_end(self):
        # "a := 1;" followed by an empty statement isn't allowed, "end" must follow a statement
        code, errors = translate_source("begin a := 1; end")
        assert code is None
        assert [error.message for error in errors] == [
            "'end' found while statement expected."
        ]

    @pytest.mark.parametrize("source", VALID_PROGRAMS)
    def test_single_stop_at_end(self, source):
        code = code_of(source)
        assert [instruction.opcode for instruction in code].count(Opcode.STOP) == 1
        assert code[-1] == I(Opcode.STOP)

    @pytest.mark.parametrize("source", VALID_PROGRAMS)
    def test_no_slot_left_unfilled(self, source):
        translator = translate(source)
        assert not translator.error
        assert translator.emitter.unfilled() == []


class TestVariables:
    def test_addresses_in_first_seen_order(self):
        translator = translate("begin b := a; a := c + b; d := a end")
        assert translator.variables == {"b": 0, "a": 1, "c": 2, "d": 3}

    def test_same_name_same_address(self):
        assert code_of("begin x := 1; y := x; x := y end") == [
            I(Opcode.PUSH, 1),
            I(Opcode.STORE, 0),
            I(Opcode.LOAD, 0),
            I(Opcode.STORE, 1),
            I(Opcode.LOAD, 1),
            I(Opcode.STORE, 0),
            I(Opcode.STOP),
        ]

    def test_unassigned_variable_reads_zero(self):
        assert run("begin write(never) end") == ["0"]

    def test_tables_are_per_translation(self):
        assert translate("begin x := 1 end").variables == {"x": 0}
        assert translate("begin y := 1 end").variables == {"y": 0}


class TestErrors:
    """Diagnostics and recovery."""

    def test_missing_expression(self):
        translator = translate("begin x:= end")
        assert translator.error
        assert translator.code is None
        assert [str(error) for error in translator.errors.get()] == [
            "<input>, line 1: 'end' found while expression expected."
        ]

    def test_file_name_in_diagnostic(self):
        _, errors = translate_source("begin\nwrite(1 end", "prog.mil")
        assert [str(error) for error in errors] == [
            "prog.mil, line 2: 'end' found while ')' expected.",
            "prog.mil, line 2: end of file found while 'end' expected.",
        ]

    def test_errors_accumulate(self):
        code, errors = translate_source("begin\n  x := ;\n  y := 1 +\n;\n  write(2)\nend")
        assert code is None
        assert [(error.line, error.message) for error in errors] == [
            (2, "';' found while expression expected."),
            (4, "';' found while expression expected."),
        ]

    def test_statement_expected(self):
        code, errors = translate_source("begin 5 end")
        assert code is None
        assert [error.message for error in errors] == [
            "number '5' found while statement expected."
        ]

    def test_statement_recovery_resumes_after_semicolon(self):
        _, errors = translate_source("begin 5 6 7; x := ; write(x) end")
        assert [error.message for error in errors] == [
            "number '5' found while statement expected.",
            "';' found while expression expected.",
        ]

    def test_chained_comparison(self):
        _, errors = translate_source("begin write(1 < 2 < 3) end")
        assert [error.message for error in errors] == ["'<' found while ')' expected."]

    def test_illegal_symbol(self):
        _, errors = translate_source("begin x := 1 $ end")
        assert [error.message for error in errors] == [
            "illegal symbol '$' found while 'end' expected."
        ]

    def test_lone_colon(self):
        code, errors = translate_source("begin x : 1 end")
        assert code is None
        assert errors[0].message == "illegal symbol ':' found while ':=' expected."

    def test_missing_begin(self):
        code, errors = translate_source("x := 1 end")
        assert code is None
        assert errors[0].message == "identifier 'x' found while 'begin' expected."

    def test_text_after_end(self):
        _, errors = translate_source("begin end\nx")
        assert [str(error) for error in errors] == [
            "<input>, line 2: identifier 'x' found while end of file expected."
        ]

    def test_bad_factor_is_skipped(self):
        _, errors = translate_source("begin x := * ; write(x) end")
        assert [error.message for error in errors] == [
            "'*' or '/' found while expression expected."
        ]

    @pytest.mark.parametrize(
        "source",
        [
            "",
            "begin",
            "begin if",
            "begin while x do",
            "begin if 1 then write(1) else",
            "((((",
            "begin x := (((1 end",
            "end end end",
            "begin ; ; ; end",
            "begin write( end",
            "begin if 1 then x := 1 od",
        ],
    )
    def test_always_terminates_with_errors(self, source):
        code, errors = translate_source(source)
        assert code is None
        assert errors
