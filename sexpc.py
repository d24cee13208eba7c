#!/usr/bin/env python3
"""
sexpc entry point.

Usage: python sexpc.py input.sexp [-o output.sexp] [--verbose]
"""

from sexpc.compiler import main

if __name__ == '__main__':
    main()
