"""Ticket layout masks.

A 90-ball ticket is a 3x9 grid. Its occupied cells are packed into a 27-bit
integer: bit ``i`` is the cell at row ``i // 9``, column ``i % 9``, with bit 0
being the least significant. The ticket's numbers are stored flat, in the
order the set bits are scanned (ascending bit index, so row-major).
"""
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence

GRID_ROWS = 3
GRID_COLUMNS = 9
GRID_CELLS = GRID_ROWS * GRID_COLUMNS
FULL_MASK = (1 << GRID_CELLS) - 1

Grid = List[List[Optional[int]]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutMismatch:
    """The mask and the number list of a ticket do not agree."""

    layout_mask: int
    expected: int  # set bits in the mask (or -1 when the mask is out of range)
    actual: int  # numbers supplied

    def describe(self) -> str:
        if self.expected < 0:
            return f"layout mask {self.layout_mask} does not fit in {GRID_CELLS} bits"
        return f"layout mask {self.layout_mask} has {self.expected} cells but {self.actual} numbers were given"


class TicketLayout(NamedTuple):
    numbers: List[int]
    layout_mask: int


def empty_grid() -> Grid:
    return [[None] * GRID_COLUMNS for _ in range(GRID_ROWS)]


def popcount(mask: int) -> int:
    return bin(mask).count('1')


def check_layout(numbers: Sequence[int], layout_mask: int) -> Optional[LayoutMismatch]:
    """Return the mismatch between ``numbers`` and ``layout_mask``, if any."""
    count = len(numbers) if numbers is not None else 0
    if layout_mask is None or layout_mask < 0 or layout_mask > FULL_MASK:
        return LayoutMismatch(layout_mask=layout_mask, expected=-1, actual=count)
    expected = popcount(layout_mask)
    if expected != count:
        return LayoutMismatch(layout_mask=layout_mask, expected=expected, actual=count)
    return None


def decode(numbers: Sequence[int], layout_mask: int,
           on_mismatch: Optional[Callable[[LayoutMismatch], None]] = None) -> Grid:
    """Place ``numbers`` into a 3x9 grid following ``layout_mask``.

    Never raises on a bad layout: an all-empty grid is returned instead so
    ticket rendering keeps working, the problem is logged, and
    ``on_mismatch`` (when given) receives the details.
    """
    mismatch = check_layout(numbers, layout_mask)
    if mismatch is not None:
        logger.warning(f"[layout-mismatch] {mismatch.describe()}")
        if on_mismatch is not None:
            on_mismatch(mismatch)
        return empty_grid()

    grid = empty_grid()
    values = iter(numbers or ())
    for bit in range(GRID_CELLS):
        if layout_mask & (1 << bit):
            grid[bit // GRID_COLUMNS][bit % GRID_COLUMNS] = next(values)
    return grid


def encode(grid: Sequence[Sequence[Optional[int]]]) -> TicketLayout:
    """Inverse of :func:`decode` for any grid a valid ticket can produce."""
    if len(grid) != GRID_ROWS or any(len(row) != GRID_COLUMNS for row in grid):
        raise ValueError(f"grid must be {GRID_ROWS}x{GRID_COLUMNS}")
    numbers: List[int] = []
    mask = 0
    for bit in range(GRID_CELLS):
        value = grid[bit // GRID_COLUMNS][bit % GRID_COLUMNS]
        if value is not None:
            numbers.append(value)
            mask |= 1 << bit
    return TicketLayout(numbers=numbers, layout_mask=mask)


def decode_ticket(ticket, on_mismatch: Optional[Callable[[LayoutMismatch], None]] = None) -> Grid:
    return decode(ticket.numbers, ticket.layout_mask, on_mismatch=on_mismatch)


def grid_numbers(grid: Iterable[Iterable[Optional[int]]]) -> List[int]:
    """Numbers on the grid in row-major order."""
    return [cell for row in grid for cell in row if cell is not None]
