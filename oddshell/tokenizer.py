from typing import List


def tokenize(line: str) -> List[str]:
    """Split an input line into whitespace-delimited tokens.

    Quotes and escapes are not interpreted. An empty or blank line yields an
    empty list, which callers treat as nothing to run.
    """
    # str.split() with no separator collapses runs and drops empty fields
    return line.split()
