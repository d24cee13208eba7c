"""
Main sexpc front end.

Coordinates reading and macro expansion, and writes the expanded program.
"""

import sys
from typing import List, Optional

from .lexer import Lexer
from .parser import Parser
from .parser.cst_nodes import CSTNode, program_to_source
from .parser.errors import ExpansionError
from .parser.macro_expander import MacroExpander, DEFAULT_MAX_DEPTH


class SexpCompiler:
    """Main front end class."""

    def __init__(self, verbose: bool = False, max_depth: Optional[int] = DEFAULT_MAX_DEPTH):
        self.verbose = verbose
        self.max_depth = max_depth

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            print(f"[sexpc] {message}", file=sys.stderr)

    def read_string(self, source: str, filename: str = "<input>") -> List[CSTNode]:
        """Read source text into a sequence of top-level forms."""
        self.log("Lexing...")
        tokens = Lexer(source, filename).tokenize()
        self.log(f"  {len(tokens)} tokens")

        self.log("Parsing...")
        forms = Parser(tokens, filename).parse()
        self.log(f"  {len(forms)} top-level forms")
        return forms

    def expand_string(self, source: str, filename: str = "<input>") -> List[CSTNode]:
        """Read source text and expand every macro in it."""
        forms = self.read_string(source, filename)

        self.log("Expanding macros...")
        expander = MacroExpander(verbose=self.verbose, max_depth=self.max_depth, log=self.log)
        return expander.expand_program(forms)

    def compile_string(self, source: str, filename: str = "<input>") -> str:
        """Expand source text and render the result back to source."""
        return program_to_source(self.expand_string(source, filename))

    def compile_file(self, input_path: str, output_path: Optional[str] = None) -> bool:
        """
        Expand a source file.

        Args:
            input_path: Path to the source file
            output_path: Where to write the expanded program (stdout if None)

        Returns:
            True if expansion succeeded, False otherwise
        """
        try:
            self.log(f"Reading {input_path}...")
            with open(input_path, 'r', encoding='utf-8') as f:
                source = f.read()

            output = self.compile_string(source, str(input_path))

            if output_path is None:
                sys.stdout.write(output)
            else:
                self.log(f"Writing {output_path}...")
                with open(output_path, 'w', encoding='utf-8') as f:
                    f.write(output)

            self.log("Expansion successful")
            return True

        except FileNotFoundError:
            print(f"Error: File not found: {input_path}", file=sys.stderr)
            return False
        except SyntaxError as e:
            print(f"Syntax error: {e}", file=sys.stderr)
            return False
        except ExpansionError as e:
            print(f"Macro error: {e}", file=sys.stderr)
            return False


def main(argv: Optional[List[str]] = None):
    """Command-line interface for the front end."""
    import argparse

    parser = argparse.ArgumentParser(
        description='sexpc - Expand macros in S-expression source code'
    )
    parser.add_argument('input', help='Input source file')
    parser.add_argument('-o', '--output', help='Output file for the expanded program (default: stdout)')
    parser.add_argument('--max-expansion-depth', type=int, default=DEFAULT_MAX_DEPTH,
                       metavar='N',
                       help=f'Maximum nested macro expansions, 0 for unlimited (default: {DEFAULT_MAX_DEPTH})')
    parser.add_argument('--verbose', action='store_true',
                       help='Verbose output')

    args = parser.parse_args(argv)

    max_depth = args.max_expansion_depth if args.max_expansion_depth > 0 else None
    compiler = SexpCompiler(verbose=args.verbose, max_depth=max_depth)
    success = compiler.compile_file(args.input, args.output)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
