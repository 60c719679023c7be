import lzma
import re
from typing import Iterable, List, Tuple

HEADER = re.compile(r'^p\s+cnf\s+(\d+)\s+(\d+)\s*$')
LITERAL = re.compile(r'-?\d+')


class ParseError(ValueError):
    def __init__(self, line, msg):
        super().__init__(f"error line {line}: {msg}")
        self.line = line


def parse_cnf(lines: Iterable[str]) -> Tuple[List[List[int]], int]:
    """
    Parse DIMACS CNF text.

    Comment lines start with `c`, the `p cnf <vars> <clauses>` header must come before the first
    clause, clauses end with `0` and may span several lines, and a line starting with `%` ends
    the clause section (SATLIB files).

    Parameters:
        lines: iterable of text lines

    Return:
        (clauses, num_vars) with every clause a list of signed integers

    Raises:
        ParseError: on malformed input or when the clauses disagree with the header
    """
    clauses = []
    num_vars = None
    num_clauses = None
    current = []
    lineno = 0
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith('c'):
            continue
        if line.startswith('%'):
            break
        if line.startswith('p'):
            if num_vars is not None:
                raise ParseError(lineno, "duplicate problem line")
            match = HEADER.match(line)
            if not match:
                raise ParseError(lineno, "expected `p cnf <int> <int>` format")
            num_vars, num_clauses = int(match.group(1)), int(match.group(2))
            continue
        if num_vars is None:
            raise ParseError(lineno, "clause before the `p cnf` problem line")

        tokens = line.split()
        for token in tokens:
            if not LITERAL.fullmatch(token):
                raise ParseError(lineno, f"expected literal, got `{token}`")
            lit = int(token)
            if lit == 0:
                if token.startswith('-'):
                    raise ParseError(lineno, "unexpected negated `0`, illegal end of clause marker")
                clauses.append(current)
                current = []
            elif abs(lit) > num_vars:
                raise ParseError(lineno, f"literal {lit} exceeds the declared {num_vars} variable(s)")
            else:
                current.append(lit)

    if num_vars is None:
        raise ParseError(lineno, "missing `p cnf` problem line")
    if current:
        raise ParseError(lineno, "last clause is not terminated by `0`")
    if len(clauses) != num_clauses:
        raise ParseError(lineno, f"header announces {num_clauses} clause(s), found {len(clauses)}")
    return clauses, num_vars


def read_cnf(path):
    """Read a DIMACS CNF file, `.xz` compressed files included."""
    path = str(path)
    if path.endswith('.xz'):
        with lzma.open(path, 'rt') as f:
            return parse_cnf(f)
    with open(path) as f:
        return parse_cnf(f)
