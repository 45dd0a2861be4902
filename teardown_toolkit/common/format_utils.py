"""
Shared formatting utilities for consistent output across the teardown tools.
"""

from typing import Sequence


def format_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    """
    Render rows as a left-aligned plain-text table.

    Args:
        headers: Column titles
        rows: Row values; each row must have one value per header

    Returns:
        Table text with a header line, a separator line and one line per row

    Examples:
        >>> print(format_table(["VPC ID", "Name"], [["vpc-1", "main"]]))
        VPC ID  Name
        ------  ----
        vpc-1   main
    """
    cells = [[str(value) for value in row] for row in rows]
    widths = [len(header) for header in headers]
    for row in cells:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))

    def _line(values):
        return "  ".join(value.ljust(widths[i]) for i, value in enumerate(values)).rstrip()

    lines = [_line(headers), _line(["-" * width for width in widths])]
    lines.extend(_line(row) for row in cells)
    return "\n".join(lines)
