import random

from bingo_hub.services.calling import NumberCaller, ball_range
from bingo_hub.services.claims import ClaimArbitrator, ClaimSubmission
from conftest import TOP_ROW, claim_payload


def make_caller(game_type=None):
    arbitrator = ClaimArbitrator()
    arbitrator.register_session('S1')
    caller = NumberCaller(arbitrator, rng=random.Random(7))
    caller.state('S1', game_type)
    return caller, arbitrator


def submit(arbitrator, caller, **kwargs):
    pattern = caller.claim_pattern('S1', kwargs.pop('pattern', None))
    assert pattern is not None
    payload = claim_payload(pattern=pattern, **kwargs)
    assert arbitrator.submit(ClaimSubmission.model_validate(payload)) is True
    return arbitrator.claims_for_session('S1')[-1]


def test_new_game_starts_on_first_pattern():
    caller, _ = make_caller()
    game = caller.state('S1').to_dict()
    assert game['win_pattern'] == 'oneLine'
    assert game['pattern_name'] == 'One Line'
    assert game['patterns'] == ['oneLine', 'twoLines', 'fullHouse']
    assert game['is_final_pattern'] is False
    assert game['game_complete'] is False

    party, _ = make_caller('party')
    assert party.state('S1').win_pattern == 'corners'


def test_valid_claim_advances_through_patterns():
    caller, arbitrator = make_caller()
    claim = submit(arbitrator, caller)
    assert caller.settle_claim(claim.id, 'S1', True) is True
    assert caller.state('S1').win_pattern == 'twoLines'

    claim = submit(arbitrator, caller)
    assert claim.win_pattern == 'twoLines'
    caller.settle_claim(claim.id, 'S1', True)
    assert caller.state('S1').win_pattern == 'fullHouse'
    assert caller.state('S1').is_final_pattern is True

    claim = submit(arbitrator, caller)
    caller.settle_claim(claim.id, 'S1', True)
    game = caller.state('S1')
    assert game.complete is True
    assert game.win_pattern == 'fullHouse'
    # No more claims once the game is complete
    assert caller.claim_pattern('S1') is None


def test_invalid_claim_keeps_pattern():
    caller, arbitrator = make_caller()
    claim = submit(arbitrator, caller, called=[3])
    assert caller.settle_claim(claim.id, 'S1', False) is True
    assert caller.state('S1').win_pattern == 'oneLine'


def test_stale_pattern_claim_is_refused():
    caller, arbitrator = make_caller()
    claim = submit(arbitrator, caller)
    caller.settle_claim(claim.id, 'S1', True)
    assert caller.claim_pattern('S1', 'oneLine') is None
    assert caller.claim_pattern('S1', 'MAINSTAGE_twoLines') == 'twoLines'
    assert caller.claim_pattern('S1', 'diagonal') is None


def test_late_verdict_on_old_pattern_does_not_skip_ahead():
    caller, arbitrator = make_caller()
    first = submit(arbitrator, caller, player_id='p1')
    second = submit(arbitrator, caller, player_id='p2')
    caller.settle_claim(first.id, 'S1', True)
    # Second oneLine winner settled after the game moved on
    caller.settle_claim(second.id, 'S1', True)
    assert caller.state('S1').win_pattern == 'twoLines'


def test_next_game_resets_pattern_and_claims():
    caller, arbitrator = make_caller()
    claim = submit(arbitrator, caller)
    caller.settle_claim(claim.id, 'S1', True)
    caller.call_number('S1', 17)
    submit(arbitrator, caller, called=TOP_ROW)

    game = caller.next_game('S1')
    assert game.game_number == 2
    assert game.win_pattern == 'oneLine'
    assert game.complete is False
    assert len(game.called) == 0
    assert arbitrator.claims_for_session('S1') == []


def test_next_game_after_unregister_keeps_session_closed():
    caller, arbitrator = make_caller()
    arbitrator.unregister_session('S1')
    caller.end_session('S1')
    caller.next_game('S1')
    assert arbitrator.is_registered('S1') is False


def test_active_pattern_does_not_start_a_game():
    caller = NumberCaller()
    assert caller.active_pattern('S2') is None
    caller.state('S2', 'speed')
    assert caller.active_pattern('S2') == 'oneLine'


def test_random_calls_stay_in_range():
    caller, _ = make_caller('75-ball')
    drawn = {caller.call_number('S1') for _ in range(ball_range('75-ball'))}
    assert drawn == set(range(1, 76))
    assert caller.call_number('S1') is None
    assert caller.call_number('S1', 3) is None
