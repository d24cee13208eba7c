"""
Lexer - Tokenizes S-expression source code into tokens.

Handles:
- Parentheses () (call-forms)
- Square brackets [] (literal sequences)
- Identifiers (any run of non-delimiter characters, including `...`)
- Strings
- Numbers (decimal, $hex, floats)
- Comments (; to end of line)
- Quote prefix (')
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Optional, List, Any


class TokenType(Enum):
    """Token types."""
    # Delimiters
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    LBRACKET = auto()    # [
    RBRACKET = auto()    # ]

    # Atoms
    IDENT = auto()       # identifier/symbol
    STRING = auto()      # "text"
    NUMBER = auto()      # 123, -456, 1.5, $FF

    # Special
    QUOTE = auto()       # ' (quote operator)

    # End of file
    EOF = auto()


# Characters that end an identifier
DELIMITERS = '()[]";\''
WHITESPACE = ' \t\n\r\f'
HEX_DIGITS = '0123456789ABCDEFabcdef'


@dataclass
class Token:
    """Represents a single token."""
    type: TokenType
    value: Any
    line: int
    column: int
    end_line: int = 0
    end_column: int = 0

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class Lexer:
    """Tokenizes S-expression source code."""

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def error(self, message: str):
        """Raise a lexer error with location information."""
        raise SyntaxError(f"{self.filename}:{self.line}:{self.column}: {message}")

    def peek(self, offset: int = 0) -> Optional[str]:
        """Peek at character at current position + offset."""
        pos = self.pos + offset
        if pos < len(self.source):
            return self.source[pos]
        return None

    def advance(self) -> Optional[str]:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return None

        ch = self.source[self.pos]
        self.pos += 1

        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return ch

    def skip_whitespace(self):
        """Skip whitespace characters."""
        while self.peek() and self.peek() in WHITESPACE:
            self.advance()

    def skip_comment(self):
        """Skip a line comment: ; to end of line."""
        while self.peek() and self.peek() != '\n':
            self.advance()

    def read_string(self) -> str:
        """Read a string literal."""
        start_line = self.line
        start_col = self.column

        self.advance()  # opening "
        chars = []

        while self.peek() and self.peek() != '"':
            ch = self.peek()

            # Handle escape sequences
            if ch == '\\':
                self.advance()
                next_ch = self.peek()
                if next_ch is None:
                    break
                if next_ch == 'n':
                    chars.append('\n')
                elif next_ch == 't':
                    chars.append('\t')
                else:
                    # \\ and \" and anything else stand for themselves
                    chars.append(next_ch)
                self.advance()
            else:
                chars.append(ch)
                self.advance()

        if self.peek() != '"':
            self.error(f"Unterminated string starting at {start_line}:{start_col}")

        self.advance()  # closing "
        return ''.join(chars)

    def read_word(self) -> str:
        """Read a run of non-delimiter characters."""
        chars = []
        while self.peek() and self.peek() not in WHITESPACE and self.peek() not in DELIMITERS:
            chars.append(self.advance())
        return ''.join(chars)

    def classify_word(self, word: str):
        """Turn a word into a number if it spells one, otherwise keep it as an identifier."""
        if word.startswith('$') and len(word) > 1 and all(c in HEX_DIGITS for c in word[1:]):
            return TokenType.NUMBER, int(word[1:], 16)
        if word.startswith('-$') and len(word) > 2 and all(c in HEX_DIGITS for c in word[2:]):
            return TokenType.NUMBER, -int(word[2:], 16)

        digits = word[1:] if word[:1] in '+-' else word
        if digits.isdigit():
            return TokenType.NUMBER, int(word)
        if digits[:1].isdigit() or (digits[:1] == '.' and digits[1:2].isdigit()):
            try:
                return TokenType.NUMBER, float(word)
            except ValueError:
                # Something like 1ST or 2nd-place is an identifier
                pass
        return TokenType.IDENT, word

    def add_token(self, token_type: TokenType, value: Any, line: int, col: int):
        self.tokens.append(Token(token_type, value, line, col, self.line, self.column))

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source code."""
        while self.pos < len(self.source):
            self.skip_whitespace()

            if self.pos >= len(self.source):
                break

            ch = self.peek()
            line = self.line
            col = self.column

            if ch == ';':
                self.skip_comment()
                continue

            # Delimiters
            if ch == '(':
                self.advance()
                self.add_token(TokenType.LPAREN, '(', line, col)
            elif ch == ')':
                self.advance()
                self.add_token(TokenType.RPAREN, ')', line, col)
            elif ch == '[':
                self.advance()
                self.add_token(TokenType.LBRACKET, '[', line, col)
            elif ch == ']':
                self.advance()
                self.add_token(TokenType.RBRACKET, ']', line, col)
            elif ch == "'":
                self.advance()
                self.add_token(TokenType.QUOTE, "'", line, col)

            # String
            elif ch == '"':
                value = self.read_string()
                self.add_token(TokenType.STRING, value, line, col)

            # Identifier or number
            else:
                word = self.read_word()
                if not word:
                    self.error(f"Unexpected character {ch!r}")
                token_type, value = self.classify_word(word)
                self.add_token(token_type, value, line, col)

        self.tokens.append(Token(TokenType.EOF, None, self.line, self.column,
                                 self.line, self.column))
        return self.tokens
