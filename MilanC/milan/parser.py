"""
Contains the Translator, which parses Milan tokens and emits stack machine instructions as
each grammar rule is recognized, in a single pass and without building a tree.
"""

from typing import Dict, List, Optional, Tuple

import milan.errors as er
import milan.lexer as lx
from milan.bytecode import Cmp, Instruction, Opcode, EQUALITY_CMPS, RELATIONAL_CMPS
from milan.emitter import Emitter
from milan.values import DEBUG

TokenType = lx.TokenType

# Tokens which can close a statement list.
BLOCK_TERMINATORS = {TokenType.END, TokenType.OD, TokenType.ELSE, TokenType.FI}

# Tokens a failed statement skips up to.
STATEMENT_SYNC = BLOCK_TERMINATORS | {TokenType.SEMICOLON, TokenType.EOF}

# Tokens a failed factor leaves for an enclosing rule to deal with.
FACTOR_FOLLOW = STATEMENT_SYNC | {
    TokenType.RIGHT_PAREN,
    TokenType.THEN,
    TokenType.DO,
}


def translate_source(
    source: str, file_name: str = "<input>"
) -> Tuple[Optional[List[Instruction]], List[er.CompileError]]:
    """
    Translates a string of Milan source code. Returns the instructions (or None if there were
    errors) along with the list of errors.
    """
    translator = Translator(lx.Lexer(source), file_name)
    translator.parse()
    return translator.code, translator.errors.get()


class Translator:
    """
    A recursive descent parser for Milan which emits code while parsing.

    One translator handles exactly one program: it owns the lexer, the variable table, the
    emitter and the list of errors.
    """

    def __init__(self, lexer: lx.Lexer, file_name: str = "<input>") -> None:
        self.lexer = lexer
        self.current = lexer.next_token()
        self.variables: Dict[str, int] = {}
        self.emitter = Emitter()
        self.errors = er.ErrorTracker(file_name)
        self.error = False
        self.code: Optional[List[Instruction]] = None

    def parse(self) -> None:
        """
        Parses the whole program. The instructions are only flushed into `code` if no errors
        were found; otherwise `error` is set and `errors` holds the diagnostics.
        """
        self._program()
        if not self.error:
            self.code = self.emitter.flush()

    # Token helpers

    def advance(self) -> lx.Token:
        """
        Consumes the current token and returns it.
        """
        token = self.current
        self.current = self.lexer.next_token()
        return token

    def see(self, kind: TokenType) -> bool:
        """
        Checks if the current token is of a given type.
        """
        return self.current.kind == kind

    def match(self, kind: TokenType) -> bool:
        """
        Checks if the current token is of a given type, and advances past it if it is.
        """
        if self.see(kind):
            self.advance()
            return True
        return False

    def must_be(self, kind: TokenType) -> None:
        """
        Consumes a token of the given type. If the current token is anything else reports an
        error and skips ahead until a token of that type (which is consumed) or the end of the
        file.
        """
        if self.match(kind):
            return
        self._report(f"{self.current.describe()} found while {kind} expected.")
        while not self.see(kind) and not self.see(TokenType.EOF):
            self.advance()
        self.match(kind)

    def _report(self, message: str) -> None:
        self.error = True
        self.errors.add(message, self.current.line, self.current.lexeme)

    def _variable(self, name: str) -> int:
        """
        Returns the address of a variable, giving it the next free address on first use.
        """
        if name not in self.variables:
            self.variables[name] = len(self.variables)
            if DEBUG:
                print(f"Declaring {name} at {self.variables[name]}")
        return self.variables[name]

    # Statements

    def _program(self) -> None:
        """
        Program : "begin" StatementList "end" EOF ;

        Any text after the closing "end" is an error.
        """
        self.must_be(TokenType.BEGIN)
        self._statement_list()
        self.must_be(TokenType.END)
        self.emitter.emit(Opcode.STOP)
        self.must_be(TokenType.EOF)

    def _statement_list(self) -> None:
        """
        StatementList : ( Statement ( ";" Statement )* )? ;

        The list may only be empty directly before a block terminator.
        """
        if self.current.kind in BLOCK_TERMINATORS:
            return
        self._statement()
        while self.match(TokenType.SEMICOLON):
            self._statement()

    def _statement(self) -> None:
        """
        Statement : IDENTIFIER ":=" Expression
                  | "if" Expression "then" StatementList ( "else" StatementList )? "fi"
                  | "while" Expression "do" StatementList "od"
                  | "write" "(" Expression ")"
                  ;
        """
        if self.see(TokenType.IDENTIFIER):
            address = self._variable(self.advance().value)
            self.must_be(TokenType.ASSIGN)
            self._expression()
            self.emitter.emit(Opcode.STORE, address)
        elif self.match(TokenType.IF):
            self._if_statement()
        elif self.match(TokenType.WHILE):
            self._while_statement()
        elif self.match(TokenType.WRITE):
            self.must_be(TokenType.LEFT_PAREN)
            self._expression()
            self.must_be(TokenType.RIGHT_PAREN)
            self.emitter.emit(Opcode.PRINT)
        else:
            self._report(f"{self.current.describe()} found while statement expected.")
            while self.current.kind not in STATEMENT_SYNC:
                self.advance()

    def _if_statement(self) -> None:
        # The false branch jump can only be filled once the then block has been emitted
        self._expression()
        jump_no = self.emitter.reserve()
        self.must_be(TokenType.THEN)
        self._statement_list()
        if self.match(TokenType.ELSE):
            jump_end = self.emitter.reserve()
            self.emitter.emit_at(jump_no, Opcode.JUMP_NO, self.emitter.current_address)
            self._statement_list()
            self.emitter.emit_at(jump_end, Opcode.JUMP, self.emitter.current_address)
        else:
            self.emitter.emit_at(jump_no, Opcode.JUMP_NO, self.emitter.current_address)
        self.must_be(TokenType.FI)

    def _while_statement(self) -> None:
        condition = self.emitter.current_address
        self._expression()
        jump_exit = self.emitter.reserve()
        self.must_be(TokenType.DO)
        self._statement_list()
        self.must_be(TokenType.OD)
        self.emitter.emit(Opcode.JUMP, condition)
        self.emitter.emit_at(jump_exit, Opcode.JUMP_NO, self.emitter.current_address)

    # Expressions, from the lowest precedence to the highest

    def _normalize(self) -> None:
        # Turns the value on top of the stack into 0 or 1
        self.emitter.emit(Opcode.PUSH, 0)
        self.emitter.emit(Opcode.COMPARE, Cmp.NE.value)

    def _expression(self) -> None:
        """
        Expression : LogicalAnd ( "||" LogicalAnd )* ;

        The right operand is skipped at runtime when the left one is already true. A DUP and a
        JUMP_YES are reserved in front of the right operand and filled in once the address past
        the OR is known, so both paths meet at the normalization.
        """
        self._logical_and()
        while self.see(TokenType.LOGICAL_OR):
            dup = self.emitter.reserve()
            jump_yes = self.emitter.reserve()
            self.advance()
            self._logical_and()
            self.emitter.emit(Opcode.OR)
            self.emitter.emit_at(dup, Opcode.DUP)
            self.emitter.emit_at(jump_yes, Opcode.JUMP_YES, self.emitter.current_address)
            self._normalize()

    def _logical_and(self) -> None:
        """
        LogicalAnd : BitwiseOr ( "&&" BitwiseOr )* ;

        Works like "||" with a JUMP_NO. Both operands are normalized before the bitwise AND,
        since e.g. 2 & 1 is 0.
        """
        self._bitwise_or()
        while self.see(TokenType.LOGICAL_AND):
            self._normalize()
            dup = self.emitter.reserve()
            jump_no = self.emitter.reserve()
            self.advance()
            self._bitwise_or()
            self._normalize()
            self.emitter.emit(Opcode.AND)
            self.emitter.emit_at(dup, Opcode.DUP)
            self.emitter.emit_at(jump_no, Opcode.JUMP_NO, self.emitter.current_address)
            self._normalize()

    def _bitwise_or(self) -> None:
        """
        BitwiseOr : BitwiseAnd ( "|" BitwiseAnd )* ;
        """
        self._bitwise_and()
        while self.match(TokenType.BITWISE_OR):
            self._bitwise_and()
            self.emitter.emit(Opcode.OR)

    def _bitwise_and(self) -> None:
        """
        BitwiseAnd : Equality ( "&" Equality )* ;
        """
        self._equality()
        while self.match(TokenType.BITWISE_AND):
            self._equality()
            self.emitter.emit(Opcode.AND)

    def _equality(self) -> None:
        """
        Equality : Relational ( ( "=" | "!=" ) Relational )? ;
        """
        self._relational()
        if self.see(TokenType.CMP) and self.current.value in EQUALITY_CMPS:
            cmp = self.advance().value
            self._relational()
            self.emitter.emit(Opcode.COMPARE, cmp.value)

    def _relational(self) -> None:
        """
        Relational : Additive ( ( "<" | "<=" | ">" | ">=" ) Additive )? ;
        """
        self._additive()
        if self.see(TokenType.CMP) and self.current.value in RELATIONAL_CMPS:
            cmp = self.advance().value
            self._additive()
            self.emitter.emit(Opcode.COMPARE, cmp.value)

    def _additive(self) -> None:
        """
        Additive : Term ( ( "+" | "-" ) Term )* ;
        """
        self._term()
        while self.see(TokenType.ADDOP):
            operator = self.advance().value
            self._term()
            self.emitter.emit(
                Opcode.ADD if operator == lx.Arithmetic.PLUS else Opcode.SUB
            )

    def _term(self) -> None:
        """
        Term : Factor ( ( "*" | "/" ) Factor )* ;
        """
        self._factor()
        while self.see(TokenType.MULOP):
            operator = self.advance().value
            self._factor()
            self.emitter.emit(
                Opcode.MULT if operator == lx.Arithmetic.MULTIPLY else Opcode.DIV
            )

    def _factor(self) -> None:
        """
        Factor : NUMBER
               | IDENTIFIER
               | "true" | "false"
               | "-" Factor
               | "!" Factor
               | "(" Expression ")"
               | "read" ( "(" ")" )?
               ;
        """
        if self.see(TokenType.NUMBER):
            self.emitter.emit(Opcode.PUSH, self.advance().value)
        elif self.see(TokenType.IDENTIFIER):
            self.emitter.emit(Opcode.LOAD, self._variable(self.advance().value))
        elif self.match(TokenType.TRUE):
            self.emitter.emit(Opcode.PUSH, 1)
        elif self.match(TokenType.FALSE):
            self.emitter.emit(Opcode.PUSH, 0)
        elif self.see(TokenType.ADDOP) and self.current.value == lx.Arithmetic.MINUS:
            self.advance()
            self._factor()
            self.emitter.emit(Opcode.INVERT)
        elif self.match(TokenType.LOGICAL_NOT):
            self._factor()
            self.emitter.emit(Opcode.PUSH, 0)
            self.emitter.emit(Opcode.COMPARE, Cmp.EQ.value)
        elif self.match(TokenType.LEFT_PAREN):
            self._expression()
            self.must_be(TokenType.RIGHT_PAREN)
        elif self.match(TokenType.READ):
            if self.match(TokenType.LEFT_PAREN):
                self.must_be(TokenType.RIGHT_PAREN)
            self.emitter.emit(Opcode.INPUT)
        else:
            self._report(f"{self.current.describe()} found while expression expected.")
            if self.current.kind not in FACTOR_FOLLOW:
                self.advance()
