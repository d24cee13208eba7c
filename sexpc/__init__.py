"""
S-expression compiler front end (sexpc).

Reads a small Lisp-family language into syntax trees and expands every
`def-macro` definition and macro invocation into primitive syntax.
"""

__version__ = "0.1.0"
__author__ = "sexpc Project"
