"""Win pattern evaluation over a decoded ticket grid.

Everything here is a pure function of (grid, called numbers, pattern).
"""
from enum import Enum
from typing import Collection, Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

from .layout import GRID_CELLS, Grid, decode

# Reported as numbers_to_go when the grid can never satisfy the pattern
UNREACHABLE = GRID_CELLS


class WinPattern(str, Enum):
    ONE_LINE = 'oneLine'
    TWO_LINES = 'twoLines'
    THREE_LINES = 'threeLines'
    FULL_HOUSE = 'fullHouse'
    CORNERS = 'corners'
    COVER_ALL = 'coverAll'


class UnknownPattern(ValueError):
    pass


_LINES_REQUIRED = {
    WinPattern.ONE_LINE: 1,
    WinPattern.TWO_LINES: 2,
    WinPattern.THREE_LINES: 3,
}

_ALIASES = {
    'blackout': WinPattern.COVER_ALL,
}

_GAME_TYPE_PREFIXES = ('MAINSTAGE_', 'PARTY_', 'MUSIC_', 'QUIZ_', 'LOGO_')

_DISPLAY_NAMES = {
    WinPattern.ONE_LINE: 'One Line',
    WinPattern.TWO_LINES: 'Two Lines',
    WinPattern.THREE_LINES: 'Three Lines',
    WinPattern.FULL_HOUSE: 'Full House',
    WinPattern.CORNERS: 'Corners',
    WinPattern.COVER_ALL: 'Cover All',
}

_LINE_PATTERNS = (WinPattern.ONE_LINE, WinPattern.TWO_LINES, WinPattern.FULL_HOUSE)

GAME_TYPE_PATTERNS: Dict[str, Tuple[WinPattern, ...]] = {
    'mainstage': _LINE_PATTERNS,
    'party': (WinPattern.CORNERS, WinPattern.ONE_LINE, WinPattern.TWO_LINES,
              WinPattern.THREE_LINES, WinPattern.FULL_HOUSE),
    'quiz': _LINE_PATTERNS,
    'music': _LINE_PATTERNS,
    'logo': _LINE_PATTERNS,
    '90-ball': _LINE_PATTERNS,
    '75-ball': (WinPattern.ONE_LINE, WinPattern.COVER_ALL),
    'speed': (WinPattern.ONE_LINE, WinPattern.FULL_HOUSE),
    'custom': _LINE_PATTERNS,
}


class ProgressResult(NamedTuple):
    is_winner: bool
    numbers_to_go: int
    completed_lines: int
    lines_to_go: int

    def to_dict(self):
        return {
            'is_winner': self.is_winner,
            'numbers_to_go': self.numbers_to_go,
            'completed_lines': self.completed_lines,
            'lines_to_go': self.lines_to_go,
        }


def normalize_pattern(pattern) -> WinPattern:
    """Resolve a pattern identifier, tolerating game-type prefixes and aliases."""
    if isinstance(pattern, WinPattern):
        return pattern
    if not pattern:
        raise UnknownPattern('win pattern is required')
    name = str(pattern)
    for prefix in _GAME_TYPE_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
            break
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return WinPattern(name)
    except ValueError:
        raise UnknownPattern(f"unknown win pattern: {pattern}") from None


def pattern_display_name(pattern) -> str:
    try:
        return _DISPLAY_NAMES[normalize_pattern(pattern)]
    except UnknownPattern:
        return str(pattern) if pattern else _DISPLAY_NAMES[WinPattern.ONE_LINE]


def patterns_for_game_type(game_type: Optional[str]) -> List[str]:
    patterns = GAME_TYPE_PATTERNS.get((game_type or '').lower(), _LINE_PATTERNS)
    return [p.value for p in patterns]


def is_marked(cell_value: Optional[int], called_numbers: Collection[int]) -> bool:
    return cell_value is not None and cell_value in called_numbers


def _lines(grid: Grid) -> List[List[int]]:
    """Rows that hold at least one number; only those count as lines."""
    rows = [[cell for cell in row if cell is not None] for row in grid]
    return [row for row in rows if row]


def _corner_numbers(grid: Grid) -> List[int]:
    # Four corners on a 90-ball ticket: first and last number of the top and bottom rows
    rows = _lines(grid)
    if not rows:
        return []
    corners: List[int] = []
    for row in (rows[0], rows[-1]):
        for value in (row[0], row[-1]):
            if value not in corners:
                corners.append(value)
    return corners


def progress(grid: Grid, called_numbers: Iterable[int], pattern) -> ProgressResult:
    """Evaluate ``pattern`` against the grid's marked state."""
    win_pattern = normalize_pattern(pattern)
    called: Set[int] = set(called_numbers)

    lines = _lines(grid)
    unmarked_per_line = [sum(1 for n in line if n not in called) for line in lines]
    completed = sum(1 for count in unmarked_per_line if count == 0)
    incomplete = sorted(count for count in unmarked_per_line if count > 0)

    if win_pattern in _LINES_REQUIRED:
        required = _LINES_REQUIRED[win_pattern]
        if completed >= required:
            return ProgressResult(True, 0, completed, 0)
        needed = required - completed
        if len(incomplete) < needed:
            return ProgressResult(False, UNREACHABLE, completed, needed)
        return ProgressResult(False, sum(incomplete[:needed]), completed, needed)

    if win_pattern == WinPattern.FULL_HOUSE:
        if not lines:
            return ProgressResult(False, UNREACHABLE, 0, 0)
        to_go = sum(incomplete)
        return ProgressResult(to_go == 0, to_go, completed, len(incomplete))

    if win_pattern == WinPattern.COVER_ALL:
        if not lines:
            return ProgressResult(False, UNREACHABLE, 0, 0)
        to_go = sum(incomplete)
        return ProgressResult(to_go == 0, to_go, completed, 0)

    # corners
    corners = _corner_numbers(grid)
    if not corners:
        return ProgressResult(False, UNREACHABLE, completed, 0)
    to_go = sum(1 for n in corners if n not in called)
    return ProgressResult(to_go == 0, to_go, completed, 0)


def one_to_go(grid: Grid, called_numbers: Iterable[int], pattern) -> List[int]:
    """Numbers on the ticket whose call alone would complete ``pattern``."""
    called = list(called_numbers)
    current = progress(grid, called, pattern)
    if current.is_winner or current.numbers_to_go != 1:
        return []
    called_set = set(called)
    candidates = [cell for row in grid for cell in row
                  if cell is not None and cell not in called_set]
    return [n for n in candidates if progress(grid, called + [n], pattern).is_winner]


def ticket_score(grid: Grid, called_numbers: Sequence[int], pattern) -> int:
    """Claim timing score.

    0 means the ticket won on the last call, a positive value is the numbers
    still to go, a negative value is how many calls were made since the
    ticket completed (a missed claim).
    """
    called = list(called_numbers)
    result = progress(grid, called, pattern)
    if not result.is_winner:
        return result.numbers_to_go
    for i in range(len(called) - 1, -1, -1):
        if not progress(grid, called[:i], pattern).is_winner:
            # called[i] completed the pattern
            return -(len(called) - i - 1)
    return 0


def sort_by_win_proximity(tickets: Iterable, called_numbers: Sequence[int], pattern) -> list:
    """Order tickets for display: perfect claims, then closest to winning, then missed claims.

    Tickets need ``numbers`` and ``layout_mask`` attributes.
    """
    def _key(ticket):
        score = ticket_score(decode(ticket.numbers, ticket.layout_mask), called_numbers, pattern)
        if score == 0:
            return (0, 0)
        if score > 0:
            return (1, score)
        return (2, -score)

    return sorted(tickets, key=_key)
