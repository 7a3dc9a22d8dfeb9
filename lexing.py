"""
Lumen lexical analysis
Positions, tokens and the tokenizer that turns source text into tokens
"""

from typing import List, Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

from pyparsing import (
    Regex, Keyword, MatchFirst, ParserElement, one_of, lineno,
    python_style_comment
)

from error_handling import LumenLexError
from utilities import make_value


@dataclass(frozen=True)
class Position:
    """Source location carried by every token and every error"""
    source_name: str
    line: int

    def __str__(self) -> str:
        return f"{self.source_name}:{self.line}"


class TokenKind(Enum):
    # Literals and names
    NUMBER = "NUMBER"
    STRING = "STRING"
    TRUE = "TRUE"
    FALSE = "FALSE"
    NIL = "NIL"
    IDENTIFIER = "IDENTIFIER"

    # Keywords
    LET = "LET"
    FN = "FN"
    IF = "IF"
    ELSE = "ELSE"
    RETURN = "RETURN"

    # Operators
    PLUS = "PLUS"
    MINUS = "MINUS"
    STAR = "STAR"
    SLASH = "SLASH"
    MODULO = "MODULO"
    EQUAL = "EQUAL"
    EQUAL_EQUAL = "EQUAL_EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    GREATER = "GREATER"
    GREATER_EQUAL = "GREATER_EQUAL"
    LESS = "LESS"
    LESS_EQUAL = "LESS_EQUAL"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"

    # Delimiters
    LEFT_PAREN = "LEFT_PAREN"
    RIGHT_PAREN = "RIGHT_PAREN"
    LEFT_BRACE = "LEFT_BRACE"
    RIGHT_BRACE = "RIGHT_BRACE"
    LEFT_BRACKET = "LEFT_BRACKET"
    RIGHT_BRACKET = "RIGHT_BRACKET"
    COMMA = "COMMA"
    SEMICOLON = "SEMICOLON"
    PACK = "PACK"

    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    """Lumen token with source information"""
    kind: TokenKind
    lexeme: str
    literal: Optional[Dict] = None
    position: Optional[Position] = None

    def __str__(self) -> str:
        return f"{self.kind.value}({self.lexeme})"


LITERAL_KINDS = frozenset({
    TokenKind.NUMBER, TokenKind.STRING, TokenKind.TRUE, TokenKind.FALSE, TokenKind.NIL
})

KEYWORDS: Dict[str, TokenKind] = {
    'let': TokenKind.LET,
    'fn': TokenKind.FN,
    'if': TokenKind.IF,
    'else': TokenKind.ELSE,
    'return': TokenKind.RETURN,
    'true': TokenKind.TRUE,
    'false': TokenKind.FALSE,
    'nil': TokenKind.NIL,
    'and': TokenKind.AND,
    'or': TokenKind.OR,
    'not': TokenKind.NOT,
}

OPERATORS: Dict[str, TokenKind] = {
    '...': TokenKind.PACK,
    '==': TokenKind.EQUAL_EQUAL,
    '!=': TokenKind.NOT_EQUAL,
    '>=': TokenKind.GREATER_EQUAL,
    '<=': TokenKind.LESS_EQUAL,
    '&&': TokenKind.AND,
    '||': TokenKind.OR,
    '+': TokenKind.PLUS,
    '-': TokenKind.MINUS,
    '*': TokenKind.STAR,
    '/': TokenKind.SLASH,
    '%': TokenKind.MODULO,
    '=': TokenKind.EQUAL,
    '>': TokenKind.GREATER,
    '<': TokenKind.LESS,
    '!': TokenKind.NOT,
    '(': TokenKind.LEFT_PAREN,
    ')': TokenKind.RIGHT_PAREN,
    '{': TokenKind.LEFT_BRACE,
    '}': TokenKind.RIGHT_BRACE,
    '[': TokenKind.LEFT_BRACKET,
    ']': TokenKind.RIGHT_BRACKET,
    ',': TokenKind.COMMA,
    ';': TokenKind.SEMICOLON,
}

KEYWORD_LITERALS: Dict[TokenKind, Dict] = {
    TokenKind.TRUE: make_value(True, "Boolean"),
    TokenKind.FALSE: make_value(False, "Boolean"),
    TokenKind.NIL: make_value(None, "Nil"),
}


class LumenTokenizer:
    """Lumen tokenizer built from pyparsing token patterns"""

    def __init__(self, source_name: str = "<input>"):
        self.source_name = source_name
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns, most specific first"""

        # Comments (start with // or #, go to end of line) produce no token
        comment = (Regex(r"//[^\n]*") | python_style_comment).set_parse_action(
            lambda t: (None, None)
        )

        string_literal = Regex(r'"(?:[^"\\\n]|\\.)*"').set_parse_action(
            lambda t: (TokenKind.STRING, make_value(self._process_string_escapes(t[0][1:-1]), "String"))
        )

        number = Regex(r'\d+(?:\.\d+)?').set_parse_action(
            lambda t: (TokenKind.NUMBER, make_value(float(t[0]), "Number"))
        )

        keyword = MatchFirst(Keyword(word) for word in KEYWORDS).set_parse_action(
            lambda t: (KEYWORDS[t[0]], KEYWORD_LITERALS.get(KEYWORDS[t[0]]))
        )

        identifier = Regex(r'[A-Za-z_][A-Za-z0-9_]*').set_parse_action(
            lambda t: (TokenKind.IDENTIFIER, None)
        )

        # one_of reorders alternatives so longer operators win over their prefixes
        operator = one_of(list(OPERATORS)).set_parse_action(
            lambda t: (OPERATORS[t[0]], None)
        )

        self.token_stream: ParserElement = MatchFirst([
            comment, string_literal, number, keyword, identifier, operator
        ]).parse_with_tabs()

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize Lumen source code; the last token is always EOF"""
        tokens = []
        last_end = 0

        for matched, start, end in self.token_stream.scan_string(text):
            self._check_gap(text, last_end, start)
            last_end = end

            kind, literal = matched[0]
            if kind is None:
                continue

            position = Position(self.source_name, lineno(start, text))
            tokens.append(Token(kind, text[start:end], literal, position))

        self._check_gap(text, last_end, len(text))

        eof_line = text.count('\n') + 1
        tokens.append(Token(TokenKind.EOF, "", None, Position(self.source_name, eof_line)))
        return tokens

    def _check_gap(self, text: str, start: int, end: int) -> None:
        """Anything between two matched tokens other than whitespace is an error"""
        for offset in range(start, end):
            char = text[offset]
            if char.isspace():
                continue
            position = Position(self.source_name, lineno(offset, text))
            if char == '"':
                raise LumenLexError("unterminated string literal", char, position)
            raise LumenLexError(f"unexpected character '{char}'", char, position)

    def _process_string_escapes(self, s: str) -> str:
        """Process escape sequences in strings"""
        escape_map = {
            'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"', '0': '\0'
        }

        result = []
        i = 0
        while i < len(s):
            if s[i] == '\\' and i + 1 < len(s):
                next_char = s[i + 1]
                if next_char in escape_map:
                    result.append(escape_map[next_char])
                    i += 2
                else:
                    # Unknown escape, keep as-is
                    result.append(s[i])
                    i += 1
            else:
                result.append(s[i])
                i += 1

        return ''.join(result)


def tokenize(source: str, source_name: str = "<input>") -> List[Token]:
    """Tokenize source text with the given diagnostic name"""
    return LumenTokenizer(source_name).tokenize(source)


def is_literal(token: Token) -> bool:
    return token.kind in LITERAL_KINDS
