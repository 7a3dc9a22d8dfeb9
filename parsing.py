"""
Lumen Programming Language Parser
Recursive-descent parser turning the token stream into a Program
"""

import sys
from typing import List, Optional, Tuple

from error_handling import LumenParseError
from lexing import Token, TokenKind, LumenTokenizer, is_literal
from syntax import (
    Program, Statement, Expression, Parameter,
    LetStatement, AssignmentStatement, FunctionStatement, ReturnStatement, ExpressionStatement,
    BlockExpression, IfExpression, BinaryExpression, UnaryExpression, GroupExpression,
    CallExpression, IdentifierExpression, LiteralExpression, ArrayExpression,
    node_label
)


# Binary precedence levels, lowest first. Each level is left associative.
BINARY_LEVELS: List[Tuple[TokenKind, ...]] = [
    (TokenKind.OR,),
    (TokenKind.AND,),
    (TokenKind.EQUAL_EQUAL, TokenKind.NOT_EQUAL),
    (TokenKind.LESS, TokenKind.LESS_EQUAL, TokenKind.GREATER, TokenKind.GREATER_EQUAL),
    (TokenKind.PLUS, TokenKind.MINUS),
    (TokenKind.STAR, TokenKind.SLASH),
    (TokenKind.MODULO,),
]

UNARY_OPERATORS = (TokenKind.NOT, TokenKind.MINUS)


def describe_token(token: Token) -> str:
    """How a token is named in parse errors"""
    if token.kind == TokenKind.EOF:
        return "end of input"
    return f"`{token.lexeme}`"


class LumenGrammar:
    """Recursive-descent grammar over a list of tokens"""

    def __init__(self, tokens: List[Token], debug: bool = False):
        self.tokens = tokens
        self.current = 0
        self.debug = debug

    # ------------------------------------------------------------------
    # Token cursor
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.current + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _is_at_end(self) -> bool:
        return self._peek().kind == TokenKind.EOF

    def _check(self, *kinds: TokenKind) -> bool:
        return self._peek().kind in kinds

    def _advance(self) -> Token:
        token = self._peek()
        if not self._is_at_end():
            self.current += 1
        return token

    def _match(self, *kinds: TokenKind) -> Optional[Token]:
        if self._check(*kinds):
            return self._advance()
        return None

    def _expect(self, kind: TokenKind, expected: str) -> Token:
        if self._check(kind):
            return self._advance()
        raise self._error(expected)

    def _error(self, expected: str) -> LumenParseError:
        token = self._peek()
        return LumenParseError(expected, describe_token(token), token.position)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def parse_program(self) -> Program:
        """program := statement* EOF"""
        statements = []
        while not self._is_at_end():
            statement = self.parse_statement(in_block=False)
            if self.debug:
                print(f"Parsed: {node_label(statement)}", file=sys.stderr)
            statements.append(statement)
        return statements

    def parse_statement(self, in_block: bool) -> Statement:
        if self._check(TokenKind.LET):
            return self.parse_let_statement()
        if self._check(TokenKind.FN):
            return self.parse_function_statement()
        if self._check(TokenKind.RETURN):
            if not in_block:
                raise self._error("statement (`return` is only allowed inside a block)")
            return self.parse_return_statement()
        if self._check(TokenKind.IDENTIFIER) and self._peek(1).kind == TokenKind.EQUAL:
            return self.parse_assignment_statement()
        return self.parse_expression_statement()

    def parse_let_statement(self) -> LetStatement:
        """let := "let" IDENT "=" expression ";" """
        self._expect(TokenKind.LET, "`let`")
        identifier = self._expect(TokenKind.IDENTIFIER, "identifier after `let`")
        self._expect(TokenKind.EQUAL, "`=` after variable name")
        expression = self.parse_expression()
        self._expect(TokenKind.SEMICOLON, "`;` after variable declaration")
        return LetStatement(identifier, expression)

    def parse_assignment_statement(self) -> AssignmentStatement:
        """assignment := IDENT "=" expression ";" """
        identifier = self._expect(TokenKind.IDENTIFIER, "identifier")
        self._expect(TokenKind.EQUAL, "`=`")
        expression = self.parse_expression()
        self._expect(TokenKind.SEMICOLON, "`;` after assignment")
        return AssignmentStatement(identifier, expression)

    def parse_function_statement(self) -> FunctionStatement:
        """function := "fn" IDENT "(" [param ("," param)*] ")" block"""
        self._expect(TokenKind.FN, "`fn`")
        identifier = self._expect(TokenKind.IDENTIFIER, "function name after `fn`")
        self._expect(TokenKind.LEFT_PAREN, "`(` after function name")

        parameters: List[Parameter] = []
        if not self._check(TokenKind.RIGHT_PAREN):
            while True:
                if parameters and parameters[-1].is_variadic:
                    # A pack parameter must close the parameter list
                    raise self._error("`)` after variadic parameter")
                param_token = self._expect(TokenKind.IDENTIFIER, "parameter name")
                is_variadic = self._match(TokenKind.PACK) is not None
                parameters.append(Parameter(param_token, is_variadic))
                if not self._match(TokenKind.COMMA):
                    break

        self._expect(TokenKind.RIGHT_PAREN, "`)` after parameters")
        block = self.parse_block()
        return FunctionStatement(identifier, parameters, block)

    def parse_return_statement(self) -> ReturnStatement:
        """return := "return" [expression] ";" """
        keyword = self._expect(TokenKind.RETURN, "`return`")
        expression = None
        if not self._check(TokenKind.SEMICOLON):
            expression = self.parse_expression()
        self._expect(TokenKind.SEMICOLON, "`;` after return value")
        return ReturnStatement(keyword, expression)

    def parse_expression_statement(self) -> ExpressionStatement:
        expression = self.parse_expression()

        if self._match(TokenKind.SEMICOLON):
            return ExpressionStatement(expression)

        # Block-like expressions and the trailing expression of a block or
        # program do not need a terminating semicolon
        if isinstance(expression, (BlockExpression, IfExpression)):
            return ExpressionStatement(expression)
        if self._check(TokenKind.RIGHT_BRACE, TokenKind.EOF):
            return ExpressionStatement(expression)

        raise self._error("`;` after expression")

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def parse_expression(self) -> Expression:
        return self._parse_binary(0)

    def _parse_binary(self, level: int) -> Expression:
        """Precedence climbing over BINARY_LEVELS"""
        if level == len(BINARY_LEVELS):
            return self.parse_unary()

        left = self._parse_binary(level + 1)
        while True:
            operator = self._match(*BINARY_LEVELS[level])
            if operator is None:
                return left
            right = self._parse_binary(level + 1)
            left = BinaryExpression(left, operator, right)

    def parse_unary(self) -> Expression:
        operator = self._match(*UNARY_OPERATORS)
        if operator is not None:
            return UnaryExpression(operator, self.parse_unary())
        return self.parse_primary()

    def parse_primary(self) -> Expression:
        token = self._peek()

        if is_literal(token):
            return LiteralExpression(self._advance())

        if token.kind == TokenKind.IDENTIFIER:
            self._advance()
            if self._match(TokenKind.LEFT_PAREN):
                return CallExpression(token, self._parse_arguments())
            return IdentifierExpression(token)

        if token.kind == TokenKind.LEFT_PAREN:
            self._advance()
            child = self.parse_expression()
            self._expect(TokenKind.RIGHT_PAREN, "`)` after expression")
            return GroupExpression(child)

        if token.kind == TokenKind.LEFT_BRACKET:
            return self.parse_array()

        if token.kind == TokenKind.LEFT_BRACE:
            return self.parse_block()

        if token.kind == TokenKind.IF:
            return self.parse_if()

        raise self._error("expression")

    def _parse_arguments(self) -> List[Expression]:
        arguments = []
        if not self._check(TokenKind.RIGHT_PAREN):
            arguments.append(self.parse_expression())
            while self._match(TokenKind.COMMA):
                arguments.append(self.parse_expression())
        self._expect(TokenKind.RIGHT_PAREN, "`)` after arguments")
        return arguments

    def parse_array(self) -> ArrayExpression:
        """array := "[" [element ("," element)*] "]" with literal or identifier elements"""
        self._expect(TokenKind.LEFT_BRACKET, "`[`")
        elements = []
        if not self._check(TokenKind.RIGHT_BRACKET):
            elements.append(self._parse_array_element())
            while self._match(TokenKind.COMMA):
                elements.append(self._parse_array_element())
        self._expect(TokenKind.RIGHT_BRACKET, "`]` after array elements")
        return ArrayExpression(elements)

    def _parse_array_element(self) -> Token:
        token = self._peek()
        if is_literal(token) or token.kind == TokenKind.IDENTIFIER:
            return self._advance()
        raise self._error("literal or identifier in array")

    def parse_block(self) -> BlockExpression:
        """block := "{" statement* "}" """
        self._expect(TokenKind.LEFT_BRACE, "`{`")
        statements = []
        while not self._check(TokenKind.RIGHT_BRACE) and not self._is_at_end():
            statements.append(self.parse_statement(in_block=True))
        self._expect(TokenKind.RIGHT_BRACE, "`}` after block")
        return BlockExpression(statements)

    def parse_if(self) -> IfExpression:
        """if := "if" expression block ["else" (if | block)]"""
        self._expect(TokenKind.IF, "`if`")
        condition = self.parse_expression()
        if_block = self.parse_block()

        else_branch = None
        if self._match(TokenKind.ELSE):
            if self._check(TokenKind.IF):
                else_branch = self.parse_if()
            else:
                else_branch = self.parse_block()

        return IfExpression(condition, if_block, else_branch)


class LumenParser:
    """Main Lumen parser combining tokenizer and grammar"""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def parse_file(self, filepath: str) -> Program:
        """Parse a Lumen source file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, filepath)

    def parse_string(self, text: str, source_name: str = "<input>") -> Program:
        """Parse Lumen source code from string"""
        return self.parse_tokens(self.tokenize(text, source_name))

    def parse_tokens(self, tokens: List[Token]) -> Program:
        if self.debug:
            print(f"Parsing {len(tokens)} tokens", file=sys.stderr)
        return LumenGrammar(tokens, self.debug).parse_program()

    def parse_expression(self, text: str, source_name: str = "<input>") -> Expression:
        """Parse a single Lumen expression"""
        grammar = LumenGrammar(self.tokenize(text, source_name), self.debug)
        expression = grammar.parse_expression()
        if not grammar._is_at_end():
            raise grammar._error("end of input")
        return expression

    def tokenize(self, text: str, source_name: str = "<input>") -> List[Token]:
        """Tokenize Lumen source code"""
        return LumenTokenizer(source_name).tokenize(text)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> LumenParser:
    """Create a Lumen parser"""
    return LumenParser(debug=debug)


def create_debug_parser() -> LumenParser:
    """Create a Lumen parser with debug enabled"""
    return LumenParser(debug=True)


def parse(source: str, source_name: str = "<input>") -> Program:
    """Tokenize and parse source text in one step"""
    return create_parser().parse_string(source, source_name)
