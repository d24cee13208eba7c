"""
Reader - Builds concrete syntax trees from tokens.

Parses parenthesized call-forms, bracketed lists, identifiers and literals.
"""

from typing import List, Optional
from ..lexer import Token, TokenType
from .cst_nodes import (
    SrcPos, CSTNode, IdentNode, SExprNode, ListNode, LiteralNode,
)


CLOSERS = {
    TokenType.LPAREN: TokenType.RPAREN,
    TokenType.LBRACKET: TokenType.RBRACKET,
}


class Parser:
    """Parses tokens into a sequence of top-level CST nodes."""

    def __init__(self, tokens: List[Token], filename: str = "<input>"):
        self.tokens = tokens
        self.filename = filename
        self.pos = 0
        self.current_token = self.tokens[0] if tokens else None

    def error(self, message: str):
        """Raise a parser error with location information."""
        if self.current_token:
            raise SyntaxError(
                f"{self.filename}:{self.current_token.line}:{self.current_token.column}: {message}"
            )
        else:
            raise SyntaxError(f"{self.filename}: {message}")

    def peek(self, offset: int = 0) -> Optional[Token]:
        """Peek at token at current position + offset."""
        pos = self.pos + offset
        if pos < len(self.tokens):
            return self.tokens[pos]
        return None

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
            self.current_token = self.tokens[self.pos]
        return token

    def expect(self, token_type: TokenType) -> Token:
        """Consume token of expected type or raise error."""
        if self.current_token.type != token_type:
            self.error(f"Expected {token_type.name}, got {self.current_token.type.name} ({repr(self.current_token.value)})")
        return self.advance()

    def token_pos(self, start: Token, end: Optional[Token] = None) -> SrcPos:
        end = end or start
        return SrcPos(self.filename, start.line, start.column, end.end_line, end.end_column)

    def parse(self) -> List[CSTNode]:
        """Parse the entire program."""
        forms = []
        if self.current_token is None:
            return forms

        while self.current_token.type != TokenType.EOF:
            forms.append(self.parse_expression())

        return forms

    def parse_expression(self) -> CSTNode:
        """Parse a single expression."""
        token = self.current_token

        if token.type in CLOSERS:
            return self.parse_sequence()

        if token.type == TokenType.QUOTE:
            # 'x reads as (quote x)
            self.advance()
            if self.current_token.type == TokenType.EOF:
                self.error("Expected expression after quote")
            quoted = self.parse_expression()
            pos = self.token_pos(token).to(quoted.pos)
            return SExprNode([IdentNode("quote", self.token_pos(token)), quoted], pos)

        if token.type == TokenType.IDENT:
            self.advance()
            return IdentNode(token.value, self.token_pos(token))

        if token.type in (TokenType.NUMBER, TokenType.STRING):
            self.advance()
            return LiteralNode(token.value, self.token_pos(token))

        if token.type in (TokenType.RPAREN, TokenType.RBRACKET):
            self.error(f"Unexpected {token.value!r}")

        self.error("Unexpected end of input")

    def parse_sequence(self) -> CSTNode:
        """Parse (...) into an SExprNode or [...] into a ListNode."""
        opener = self.advance()
        closer_type = CLOSERS[opener.type]
        elements = []

        while self.current_token.type != closer_type:
            if self.current_token.type == TokenType.EOF:
                raise SyntaxError(
                    f"{self.filename}:{opener.line}:{opener.column}: Unclosed {opener.value!r}"
                )
            if self.current_token.type in (TokenType.RPAREN, TokenType.RBRACKET):
                expected = ')' if closer_type == TokenType.RPAREN else ']'
                self.error(f"Mismatched {self.current_token.value!r}, expected {expected!r}")
            elements.append(self.parse_expression())

        closer = self.expect(closer_type)
        pos = self.token_pos(opener, closer)
        if opener.type == TokenType.LPAREN:
            return SExprNode(elements, pos)
        return ListNode(elements, pos)
