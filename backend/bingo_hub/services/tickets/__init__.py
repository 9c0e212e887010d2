"""Ticket domain: layout decoding and win pattern evaluation.

Pure functions only; safe to call from HTTP routes, socket handlers and the
claim arbitrator without any locking.
"""
from .layout import (  # noqa: F401
    GRID_CELLS,
    GRID_COLUMNS,
    GRID_ROWS,
    LayoutMismatch,
    TicketLayout,
    check_layout,
    decode,
    decode_ticket,
    empty_grid,
    encode,
    grid_numbers,
)
from .patterns import (  # noqa: F401
    UNREACHABLE,
    ProgressResult,
    UnknownPattern,
    WinPattern,
    is_marked,
    normalize_pattern,
    one_to_go,
    pattern_display_name,
    patterns_for_game_type,
    progress,
    sort_by_win_proximity,
    ticket_score,
)
