"""Number calling: the called-number state of each session's current game."""
import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from bingo_hub.services.tickets import UnknownPattern, normalize_pattern, pattern_display_name, patterns_for_game_type

BALL_RANGES = {
    'mainstage': 90,
    '90-ball': 90,
    'speed': 90,
    'custom': 90,
    'quiz': 90,
    'music': 90,
    'logo': 90,
    'party': 80,
    '75-ball': 75,
}


def ball_range(game_type: Optional[str]) -> int:
    return BALL_RANGES.get((game_type or '').lower(), 90)


class CalledNumbers:
    """Append-only sequence of called numbers, kept in call order."""

    def __init__(self, max_number: int = 90) -> None:
        self.max_number = max_number
        self._order: List[int] = []
        self._seen = set()

    def call(self, number: int) -> bool:
        if number in self._seen or not 1 <= number <= self.max_number:
            return False
        self._order.append(number)
        self._seen.add(number)
        return True

    @property
    def last(self) -> Optional[int]:
        return self._order[-1] if self._order else None

    def remaining(self) -> List[int]:
        return [n for n in range(1, self.max_number + 1) if n not in self._seen]

    def snapshot(self) -> Tuple[int, ...]:
        return tuple(self._order)

    def __contains__(self, number) -> bool:
        return number in self._seen

    def __len__(self) -> int:
        return len(self._order)


@dataclass
class GameState:
    session_id: str
    game_type: str
    game_number: int = 1
    called: CalledNumbers = field(default_factory=CalledNumbers)
    win_pattern: Optional[str] = None
    complete: bool = False

    def __post_init__(self):
        if self.win_pattern is None:
            self.win_pattern = self.patterns[0]

    @property
    def patterns(self) -> List[str]:
        return patterns_for_game_type(self.game_type)

    @property
    def is_final_pattern(self) -> bool:
        return self.win_pattern == self.patterns[-1]

    def to_dict(self):
        return {
            'session_id': self.session_id,
            'game_type': self.game_type,
            'game_number': self.game_number,
            'called_numbers': list(self.called.snapshot()),
            'last_called_number': self.called.last,
            'win_pattern': self.win_pattern,
            'pattern_name': pattern_display_name(self.win_pattern),
            'patterns': self.patterns,
            'is_final_pattern': self.is_final_pattern,
            'game_complete': self.complete,
        }


class NumberCaller:
    """Tracks the current game of every live session.

    Each game walks through the patterns of its game type in order; a valid
    claim on the active pattern moves the game to the next one, and a valid
    claim on the last pattern completes the game. Starting the next game
    resets the called numbers and the pattern, and discards any pending
    claims for the session.
    """

    def __init__(self, arbitrator=None, default_game_type: str = 'mainstage', rng=None,
                 logger: Optional[logging.Logger] = None) -> None:
        self._arbitrator = arbitrator
        self._default_game_type = default_game_type
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger('bingo_hub.calling')
        self._lock = threading.Lock()
        self._games: Dict[str, GameState] = {}

    def state(self, session_id: str, game_type: Optional[str] = None) -> GameState:
        with self._lock:
            return self._state(session_id, game_type)

    def _state(self, session_id: str, game_type: Optional[str] = None) -> GameState:
        game = self._games.get(session_id)
        if game is None:
            game_type = game_type or self._default_game_type
            game = GameState(session_id=session_id, game_type=game_type,
                             called=CalledNumbers(ball_range(game_type)))
            self._games[session_id] = game
        return game

    def active_pattern(self, session_id: str) -> Optional[str]:
        """Active pattern of a running session, without starting one."""
        with self._lock:
            game = self._games.get(session_id)
            return game.win_pattern if game is not None else None

    def claim_pattern(self, session_id: str, requested: Optional[str] = None) -> Optional[str]:
        """The pattern a new claim is judged against.

        Returns None when the claim names a pattern other than the active
        one, or the game is already complete.
        """
        with self._lock:
            game = self._state(session_id)
            if game.complete:
                return None
            if requested is None:
                return game.win_pattern
            try:
                pattern = normalize_pattern(requested).value
            except UnknownPattern:
                return None
            return pattern if pattern == game.win_pattern else None

    def advance_pattern(self, session_id: str, won_pattern: Optional[str] = None) -> GameState:
        """Move past the active pattern after it has been won.

        A win on a pattern that is no longer active (a late verdict) leaves
        the game where it is.
        """
        with self._lock:
            game = self._state(session_id)
            if won_pattern is not None and normalize_pattern(won_pattern).value != game.win_pattern:
                self._logger.info(f"[pattern] session={session_id} ignoring win on {won_pattern}; "
                                  f"active={game.win_pattern}")
                return game
            if game.complete:
                return game
            patterns = game.patterns
            index = patterns.index(game.win_pattern) if game.win_pattern in patterns else len(patterns) - 1
            if index + 1 < len(patterns):
                game.win_pattern = patterns[index + 1]
                self._logger.info(f"[pattern] session={session_id} game={game.game_number} next={game.win_pattern}")
            else:
                game.complete = True
                self._logger.info(f"[pattern] session={session_id} game={game.game_number} complete")
            return game

    def settle_claim(self, claim_id: str, session_id: str, is_valid: bool) -> bool:
        """Settle a claim through the arbitrator, advancing the pattern on a valid win."""
        if self._arbitrator is None:
            return False
        return self._arbitrator.process(
            claim_id, session_id, is_valid,
            on_progress=lambda claim: self.advance_pattern(session_id, claim.win_pattern),
        )

    def call_number(self, session_id: str, number: Optional[int] = None) -> Optional[int]:
        """Call ``number`` (or a random uncalled one). Returns None if it cannot be called."""
        with self._lock:
            game = self._state(session_id)
            if number is None:
                remaining = game.called.remaining()
                if not remaining:
                    return None
                number = self._rng.choice(remaining)
            return number if game.called.call(number) else None

    def next_game(self, session_id: str, game_type: Optional[str] = None) -> GameState:
        with self._lock:
            game = self._state(session_id)
            game_type = game_type or game.game_type
            game = GameState(session_id=session_id, game_type=game_type,
                             game_number=game.game_number + 1,
                             called=CalledNumbers(ball_range(game_type)))
            self._games[session_id] = game
        if self._arbitrator is not None:
            self._arbitrator.clear_claims_for_session(session_id)
        return game

    def end_session(self, session_id: str) -> None:
        with self._lock:
            self._games.pop(session_id, None)
