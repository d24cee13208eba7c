"""Lexer - Tokenizes source text for the reader."""

from .lexer import Lexer, Token, TokenType

__all__ = ['Lexer', 'Token', 'TokenType']
