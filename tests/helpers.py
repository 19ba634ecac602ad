"""Counter fixtures shared by the test modules."""

from __future__ import annotations

# Example pair from the kernel stat format: 10 reads, 200 sectors read,
# 5 ms read wait, 4 writes, 80 sectors written, 2 ms write wait,
# 5 in flight, 9 ms queue wait over one interval.
PREVIOUS = [100, 0, 2000, 50, 40, 0, 800, 20, 3, 70, 90]
CURRENT = [110, 0, 2200, 55, 44, 0, 880, 22, 5, 77, 99]


def format_stat(values: list[int]) -> str:
    """Render counter values the way the kernel pads them."""
    return " ".join(f"{v:>8}" for v in values) + "\n"
