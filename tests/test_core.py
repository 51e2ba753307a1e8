from __future__ import annotations

from typing import List

import numpy as np
import pytest

from brick_crush.game import BoardEngine, BrickCrushGame, GameConfig, GameEvent, GamePhase


def _game(library, rows=None, **config) -> BrickCrushGame:
    game = BrickCrushGame(GameConfig(random_seed=7, **config), library=library)
    if rows is not None:
        game.board_engine = BoardEngine.from_cells(rows)
    return game


def _open_rows(rows_to_gap, gaps):
    rows = [[0] * 8 for _ in range(8)]
    for y in rows_to_gap:
        rows[y] = [1] * 8
    for x, y in gaps:
        rows[y][x] = 0
    return rows


def test_placement_with_lines_waits_for_resolve(dot_library, row_zero_gap_rows):
    game = _game(dot_library, row_zero_gap_rows)

    outcome = game.place_piece(0, 7, 0)
    assert outcome.placed
    assert outcome.pending_clear
    assert outcome.lines.rows == [0]
    assert outcome.potential.final_score == 50
    assert outcome.events == [GameEvent.PIECE_PLACED]
    assert game.phase is GamePhase.PENDING_CLEAR
    # the row is still on the board and the slot is still held
    assert game.board[0].all()
    assert all(p is not None for p in game.bag)

    refused = game.place_piece(1, 1, 1)
    assert not refused.placed
    assert refused.events == []
    assert game.get_valid_actions() == []

    cleared = game.resolve_clear()
    assert cleared.result.final_score == 50
    assert cleared.events == [GameEvent.LINES_CLEARED]
    assert not cleared.game_over
    assert game.phase is GamePhase.CLEARED
    assert not game.board[0].any()
    assert game.bag[0] is None
    assert game.get_state()["last_clear_score"] == 50
    assert game.score == 50
    assert game.scoring.combo == 2

    with pytest.raises(RuntimeError):
        game.resolve_clear()


def test_game_over_is_checked_on_cleared_board(square_library, checker_rows):
    rows = checker_rows
    rows[0] = [1, 1, 1, 1, 1, 1, 0, 0]
    rows[1] = [1, 1, 1, 1, 1, 1, 0, 0]
    game = _game(square_library, rows)

    outcome = game.place_piece(0, 6, 0)
    assert outcome.lines.rows == [0, 1]
    assert not outcome.game_over
    # nothing fits until the two rows are gone
    assert game.board_engine.is_game_over(game.bag)

    cleared = game.resolve_clear()
    assert not cleared.game_over
    assert GameEvent.GAME_OVER not in cleared.events
    assert game.phase is GamePhase.CLEARED
    assert game.score == 150
    assert (1, 0, 0) in game.get_valid_actions()


def test_game_over_after_placement(square_library):
    rows = [[1] * 8 for _ in range(8)]
    for x, y in [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1), (0, 2), (1, 2)]:
        rows[y][x] = 0
    for k in range(3, 8):
        rows[k][k] = 0
    seen = []
    game = _game(square_library, rows)
    game.add_listener(lambda event, payload: seen.append((event, payload)))

    outcome = game.place_piece(0, 0, 0)
    assert outcome.placed
    assert outcome.game_over
    assert outcome.events == [GameEvent.PIECE_PLACED, GameEvent.GAME_OVER]
    assert game.is_game_over
    assert game.phase is GamePhase.GAME_OVER
    assert seen[-1][0] is GameEvent.GAME_OVER
    assert seen[-1][1]["score"] == 0

    assert not game.place_piece(1, 6, 6).placed
    assert game.get_valid_actions() == []


def test_combo_survives_bag_with_a_clear_and_resets_without(dot_library):
    game = _game(dot_library, _open_rows([0], [(7, 0)]))

    game.place_piece(0, 7, 0)
    game.resolve_clear()
    assert game.scoring.combo == 2

    game.place_piece(1, 0, 5)
    outcome = game.place_piece(2, 2, 5)
    assert GameEvent.BAG_EXHAUSTED in outcome.events
    assert game.scoring.combo == 2
    assert all(p is not None for p in game.bag)

    game.place_piece(0, 0, 6)
    game.place_piece(1, 2, 6)
    assert game.scoring.combo == 2
    outcome = game.place_piece(2, 4, 6)
    assert GameEvent.BAG_EXHAUSTED in outcome.events
    assert game.scoring.combo == 1


def test_clear_on_last_piece_counts_for_that_bag(dot_library):
    game = _game(dot_library, _open_rows([0], [(7, 0)]))
    game.place_piece(0, 0, 4)
    game.place_piece(1, 2, 4)
    outcome = game.place_piece(2, 7, 0)
    assert outcome.pending_clear
    cleared = game.resolve_clear()
    assert cleared.events == [GameEvent.LINES_CLEARED, GameEvent.BAG_EXHAUSTED]
    assert game.scoring.combo == 2


def test_invalid_placement_is_reported_without_mutation(square_library):
    game = _game(square_library)
    before = game.board
    outcome = game.place_piece(0, 7, 7)
    assert not outcome.placed
    assert outcome.events == [GameEvent.PLACEMENT_INVALID]
    assert np.array_equal(game.board, before)
    assert game.phase is GamePhase.IDLE


def test_empty_or_unknown_slot_is_a_noop(square_library):
    game = _game(square_library)
    assert game.place_piece(0, 0, 0).placed
    again = game.place_piece(0, 4, 4)
    assert not again.placed
    assert again.events == []
    assert not game.place_piece(5, 4, 4).placed


def test_place_at_cells(square_library):
    game = _game(square_library)
    outcome = game.place_at_cells(0, [(3, 4), (4, 4), (3, 5), (4, 5)])
    assert outcome.placed
    assert game.board[4, 3] == game.board[5, 4] == 1

    wrong = game.place_at_cells(1, [(0, 0), (1, 0), (2, 0), (3, 0)])
    assert not wrong.placed
    assert wrong.events == [GameEvent.PLACEMENT_INVALID]
    assert not game.place_at_cells(1, []).placed


def test_preview(dot_library, row_zero_gap_rows):
    game = _game(dot_library, row_zero_gap_rows)
    ghost, potential = game.preview(0, 7, 0)
    assert ghost.valid
    assert ghost.coords == [(7, 0)]
    assert ghost.would_complete_rows == [0]
    assert potential.final_score == 50
    assert potential.combo_after == 2

    ghost, potential = game.preview(0, 0, 0)
    assert not ghost.valid
    assert potential.final_score == 0

    assert game.place_piece(0, 1, 2).placed
    assert game.preview(0, 3, 3) == (None, None)


def test_new_game_abandons_pending_clear(dot_library, row_zero_gap_rows):
    game = _game(dot_library, row_zero_gap_rows)
    game.place_piece(0, 7, 0)
    assert game.phase is GamePhase.PENDING_CLEAR

    game.new_game(seed=5)
    assert game.phase is GamePhase.IDLE
    assert not game.board.any()
    assert game.score == 0
    assert all(p is not None for p in game.bag)
    assert game.seed == "5"
    assert game.place_piece(0, 0, 0).placed


def test_same_seed_same_deal():
    a = BrickCrushGame(GameConfig(random_seed="daily"))
    b = BrickCrushGame(GameConfig(random_seed="daily"))
    assert a.bag == b.bag
    assert a.seed == "daily"


def test_listeners_and_best_score(dot_library):
    events: List[GameEvent] = []
    game = BrickCrushGame(
        GameConfig(random_seed=1, best_score=30),
        library=dot_library,
        listeners=[lambda event, payload: events.append(event)],
    )
    game.board_engine = BoardEngine.from_cells(_open_rows([0], [(7, 0)]))
    game.place_piece(0, 7, 0)
    game.resolve_clear()
    assert events == [GameEvent.PIECE_PLACED, GameEvent.LINES_CLEARED]
    assert game.best_score == 50

    high = BrickCrushGame(GameConfig(random_seed=1, best_score=1000), library=dot_library)
    assert high.best_score == 1000


def test_listener_errors_propagate_after_placement_settles(square_library):
    calls: List[GameEvent] = []

    def boom(event, payload):
        calls.append(event)
        if len(calls) == 1:
            raise KeyError(event)

    game = _game(square_library)
    game.add_listener(boom)
    with pytest.raises(KeyError):
        game.place_piece(0, 0, 0)

    assert calls == [GameEvent.PIECE_PLACED]
    assert game.bag[0] is None
    assert game.board.sum() == 4
    assert game.phase is GamePhase.IDLE
    # the slot was consumed, so the piece cannot be placed a second time
    assert not game.place_piece(0, 4, 4).placed
    assert game.board.sum() == 4


def test_listener_error_on_clear_leaves_game_playable(dot_library, row_zero_gap_rows):
    def boom(event, payload):
        if event is GameEvent.LINES_CLEARED:
            raise KeyError(event)

    game = _game(dot_library, row_zero_gap_rows)
    game.add_listener(boom)
    assert game.place_piece(0, 7, 0).pending_clear
    with pytest.raises(KeyError):
        game.resolve_clear()

    assert game.phase is GamePhase.CLEARED
    assert not game.board[0].any()
    assert game.bag[0] is None
    assert game.score == 50
    assert game.get_valid_actions()
    with pytest.raises(RuntimeError):
        game.resolve_clear()


def test_state_dict(square_library):
    state = _game(square_library).get_state()
    assert state["phase"] == "idle"
    assert state["bag"] == ["SQ", "SQ", "SQ"]
    assert state["combo"] == 1
    assert state["last_clear_score"] == 0
    assert state["grid"].shape == (8, 8)


@pytest.mark.parametrize("seed", [0, 1, "replay"])
def test_playthrough_invariants(seed):
    game = BrickCrushGame(GameConfig(random_seed=seed))
    last_score = 0
    for _ in range(400):
        actions = game.get_valid_actions()
        if not actions:
            break
        slot, x, y = actions[len(actions) // 2]
        outcome = game.place_piece(slot, x, y)
        assert outcome.placed
        if outcome.pending_clear:
            game.resolve_clear()
        assert not game.board_engine.detect_completed_lines()
        assert any(p is not None for p in game.bag)
        assert 1 <= game.scoring.combo <= 25
        assert game.score >= last_score
        last_score = game.score
    if game.is_game_over:
        assert game.board_engine.is_game_over(game.bag)
