import random
from datetime import datetime, timezone

import pytest

from assassin.services.games.engine import GameEngine
from assassin.services.games.errors import GameError
from assassin.services.games.events import GameUpdated, Notification
from assassin.services.games.state import GameState, GameStatus

from conftest import assert_consistent

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine():
    return GameEngine(rng=random.Random(11), clock=lambda: NOW, code_factory=lambda: 'abcde')


def lobby(*roster, name='Night Game'):
    return GameState(id='g1', code='ABCDE', name=name, description='', owner=roster[0], roster=tuple(roster))


def active(chain, name='Night Game'):
    """Active game whose targets follow `chain` in order, closing the loop."""
    targets = {p: chain[(i + 1) % len(chain)] for i, p in enumerate(chain)}
    return lobby(*chain, name=name).activated(targets, NOW)


# ---- create ----

def test_create_opens_lobby_with_owner(engine):
    outcome = engine.create('U1', 'Night Game', 'Bring socks')

    assert outcome.ok
    state = outcome.state
    assert state.status is GameStatus.LOBBY
    assert state.roster == ('U1',)
    assert state.owner == 'U1'
    assert state.code == 'ABCDE'
    assert state.targets == {}
    assert state.version == 0
    assert outcome.events == ()
    assert_consistent(state)


def test_create_retries_codes_already_in_use():
    codes = iter(['taken', 'free1'])
    engine = GameEngine(code_factory=lambda: next(codes))

    outcome = engine.create('U1', 'g', '', code_in_use=lambda code: code == 'TAKEN')

    assert outcome.state.code == 'FREE1'


# ---- join ----

def test_join_appends_player_and_emits_update(engine):
    state = lobby('U1')

    outcome = engine.join(state, 'U2', 'ABCDE')

    assert outcome.ok
    assert outcome.state.roster == ('U1', 'U2')
    assert [type(e) for e in outcome.events] == [GameUpdated]
    assert outcome.events[0].roster == ('U1', 'U2')
    assert state.roster == ('U1',)


def test_join_code_is_case_insensitive(engine):
    assert engine.join(lobby('U1'), 'U2', ' abcde ').ok


@pytest.mark.parametrize('game,code', [(None, 'ABCDE'), (lobby('U1'), 'ZZZZZ')])
def test_join_with_unknown_code_is_rejected(engine, game, code):
    assert engine.join(game, 'U2', code).error is GameError.INVALID_CODE


def test_join_started_or_completed_game_is_rejected(engine):
    running = active(['U1', 'U2', 'U3'])
    finished, _ = active(['U1', 'U2']).relinked('U2')
    assert finished.completed

    assert engine.join(running, 'U4', 'ABCDE').error is GameError.ALREADY_STARTED
    assert engine.join(finished, 'U4', 'ABCDE').error is GameError.ALREADY_STARTED


def test_join_twice_is_rejected(engine):
    state = lobby('U1', 'U2')
    outcome = engine.join(state, 'U2', 'ABCDE')
    assert outcome.error is GameError.ALREADY_JOINED
    assert outcome.state is None


# ---- start ----

def test_scenario_a_three_players_form_a_three_cycle(engine):
    state = engine.create('U1', 'Night Game', '').state
    state = engine.join(state, 'U2', state.code).state
    state = engine.join(state, 'U3', state.code).state

    outcome = engine.start(state, 'U1')

    assert outcome.ok
    started = outcome.state
    assert started.status is GameStatus.ACTIVE
    assert started.start_time == NOW
    assert list(started.iter_chain('U1'))[0] == 'U1'
    assert set(started.iter_chain('U1')) == {'U1', 'U2', 'U3'}
    assert started.targets['U1'] in ('U2', 'U3')
    assert_consistent(started)


def test_start_emits_update_and_roster_notification(engine):
    outcome = engine.start(lobby('U1', 'U2', 'U3'), 'U1')

    update, notice = outcome.events
    assert isinstance(update, GameUpdated)
    assert isinstance(notice, Notification)
    assert notice.message == 'Night Game has started.'
    assert notice.kind == 'started'
    assert notice.roster == ('U1', 'U2', 'U3')


def test_only_owner_may_start(engine):
    assert engine.start(lobby('U1', 'U2', 'U3'), 'U2').error is GameError.NOT_OWNER


def test_start_needs_three_players(engine):
    assert engine.start(lobby('U1', 'U2'), 'U1').error is GameError.INSUFFICIENT_PLAYERS


def test_min_players_is_configurable():
    engine = GameEngine(min_players=5)
    assert engine.start(lobby('U1', 'U2', 'U3', 'U4'), 'U1').error is GameError.INSUFFICIENT_PLAYERS


def test_start_twice_is_rejected(engine):
    started = engine.start(lobby('U1', 'U2', 'U3'), 'U1').state
    assert engine.start(started, 'U1').error is GameError.ALREADY_STARTED


@pytest.mark.parametrize('size', [3, 4, 6, 9])
def test_start_cycle_visits_every_player(size):
    roster = [f'U{i}' for i in range(1, size + 1)]
    for seed in range(10):
        state = GameEngine(rng=random.Random(seed)).start(lobby(*roster), 'U1').state
        for player in roster:
            walked = list(state.iter_chain(player))
            assert len(walked) == size
            assert state.targets[walked[-1]] == player


# ---- surrender ----

def test_scenario_b_surrender_relinks_hunter_to_victim(engine):
    state = active(['U1', 'U2', 'U3'])

    outcome = engine.surrender(state, 'U2')

    assert outcome.ok
    after = outcome.state
    assert after.targets == {'U1': 'U3', 'U3': 'U1'}
    assert after.eliminated == ('U2',)
    assert after.status is GameStatus.ACTIVE
    assert_consistent(after)
    notice, update = outcome.events
    assert notice.message == 'U1 has eliminated U2.'
    assert notice.kind == 'eliminated'
    assert isinstance(update, GameUpdated)


def test_scenario_c_last_surrender_completes_game(engine):
    state = engine.surrender(active(['U1', 'U2', 'U3']), 'U2').state

    outcome = engine.surrender(state, 'U3')

    after = outcome.state
    assert after.targets == {'U1': 'U1'}
    assert after.status is GameStatus.COMPLETED
    assert after.winner == 'U1'
    assert after.eliminated == ('U2', 'U3')
    assert_consistent(after)
    notice, _ = outcome.events
    assert notice.kind == 'won'
    assert notice.message == 'U1 won the game "Night Game"!'


def test_surrender_messages_use_display_names(engine):
    names = {'U1': 'Alice', 'U2': 'Bob', 'U3': 'Carol'}
    outcome = engine.surrender(active(['U1', 'U2', 'U3']), 'U2', display_name=names.get)
    assert outcome.events[0].message == 'Alice has eliminated Bob.'


def test_relink_property_holds_for_random_games():
    rng = random.Random(99)
    for _ in range(30):
        roster = [f'U{i}' for i in range(1, rng.randint(3, 9) + 1)]
        state = GameEngine(rng=rng).start(lobby(*roster), 'U1').state
        while not state.completed:
            caller = rng.choice(state.remaining)
            hunter = state.hunter_of(caller)
            victim = state.target_of(caller)

            after = GameEngine().surrender(state, caller).state

            assert caller not in after.targets
            assert after.targets[hunter] == victim
            assert_consistent(after)
            state = after


def test_game_completes_exactly_when_one_player_remains():
    rng = random.Random(5)
    roster = ['U1', 'U2', 'U3', 'U4', 'U5']
    state = GameEngine(rng=rng).start(lobby(*roster), 'U1').state
    order = ['U3', 'U1', 'U5', 'U2']
    for idx, caller in enumerate(order):
        state = GameEngine().surrender(state, caller).state
        if idx < len(order) - 1:
            assert state.status is GameStatus.ACTIVE
            assert state.winner is None
    assert state.status is GameStatus.COMPLETED
    assert state.winner == 'U4'
    assert state.remaining == ('U4',)


def test_surrendering_twice_is_rejected_without_change(engine):
    state = engine.surrender(active(['U1', 'U2', 'U3', 'U4']), 'U2').state

    outcome = engine.surrender(state, 'U2')

    assert outcome.error is GameError.NOT_A_PARTICIPANT
    assert outcome.state is None
    assert outcome.events == ()
    assert state.eliminated == ('U2',)


def test_stranger_cannot_surrender(engine):
    assert engine.surrender(active(['U1', 'U2', 'U3']), 'U9').error is GameError.NOT_A_PARTICIPANT


def test_surrender_requires_active_game(engine):
    finished = engine.surrender(active(['U1', 'U2']), 'U2').state
    assert engine.surrender(lobby('U1', 'U2', 'U3'), 'U2').error is GameError.NOT_STARTED
    assert engine.surrender(finished, 'U1').error is GameError.NOT_STARTED


def test_surrender_does_not_modify_input_snapshot(engine):
    state = active(['U1', 'U2', 'U3'])
    before = dict(state.targets)

    engine.surrender(state, 'U2')

    assert dict(state.targets) == before
    assert state.eliminated == ()


def test_snapshot_targets_are_read_only():
    source = {'U1': 'U2', 'U2': 'U3', 'U3': 'U1'}
    state = lobby('U1', 'U2', 'U3').activated(source, NOW)

    with pytest.raises(TypeError):
        state.targets['U1'] = 'U3'
    source['U1'] = 'U3'

    assert state.targets['U1'] == 'U2'
    assert state.targets == {'U1': 'U2', 'U2': 'U3', 'U3': 'U1'}


def test_snapshots_are_hashable():
    state = active(['U1', 'U2', 'U3'])
    same = active(['U1', 'U2', 'U3'])

    assert state == same
    assert hash(state) == hash(same)
    assert len({state, same, state.committed(1)}) == 2
