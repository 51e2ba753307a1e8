from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from brick_crush.game import BAG_SIZE, BOARD_SIZE, BrickCrushGame, GameConfig


MAX_PIECE_EXTENT = 5


def _compute_action_mask(game: BrickCrushGame) -> np.ndarray:
    mask = np.zeros((BAG_SIZE, BOARD_SIZE, BOARD_SIZE), dtype=np.bool_)
    for slot, x, y in game.get_valid_actions():
        mask[slot, x, y] = True
    return mask


class BrickCrushEnv(gym.Env):
    """Agent-facing wrapper around `BrickCrushGame`.

    Action is ``(slot, x, y)``. Line clears are resolved inside `step`, so an
    agent never observes a board with completed lines still on it.
    """

    metadata = {"render_modes": ["rgb_array"], "render_fps": 30}

    def __init__(self, config: Optional[GameConfig] = None, render_mode: Optional[str] = None,
                 cell_reward: float = 0.05,
                 invalid_action_penalty: float = -1.0,
                 terminal_penalty: float = 0.0,
                 max_episode_steps: int = 10000) -> None:
        super().__init__()
        self.game = BrickCrushGame(config)
        self.render_mode = render_mode

        self.cell_reward = float(cell_reward)
        self.invalid_action_penalty = float(invalid_action_penalty)
        self.terminal_penalty = float(terminal_penalty)
        self.max_episode_steps = int(max_episode_steps)

        n_pieces = len(self.game.library)
        max_combo = self.game.scoring.rules.max_combo

        self.observation_space = spaces.Dict(
            {
                "grid": spaces.Box(low=0, high=1, shape=(BOARD_SIZE, BOARD_SIZE), dtype=np.int8),
                "pieces": spaces.Box(low=-1, high=n_pieces - 1, shape=(BAG_SIZE,), dtype=np.int8),
                "shapes": spaces.Box(
                    low=0, high=1, shape=(BAG_SIZE, MAX_PIECE_EXTENT, MAX_PIECE_EXTENT), dtype=np.int8
                ),
                "pieces_remaining": spaces.Discrete(BAG_SIZE + 1),
                "combo": spaces.Discrete(max_combo + 1),
            }
        )

        # Action: (slot, x, y)
        self.action_space = spaces.MultiDiscrete((BAG_SIZE, BOARD_SIZE, BOARD_SIZE))

        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        pieces = np.full((BAG_SIZE,), -1, dtype=np.int8)
        shapes = np.zeros((BAG_SIZE, MAX_PIECE_EXTENT, MAX_PIECE_EXTENT), dtype=np.int8)
        bag = self.game.bag
        for i, piece in enumerate(bag):
            if piece is None:
                continue
            pieces[i] = self.game.library.index_of(piece.id)
            s = piece.shape()
            shapes[i, : s.shape[0], : s.shape[1]] = s
        return {
            "grid": np.array(self.game.board, dtype=np.int8),
            "pieces": pieces,
            "shapes": shapes,
            "pieces_remaining": sum(1 for p in bag if p is not None),
            "combo": self.game.scoring.combo,
        }

    def _get_info(self) -> Dict[str, Any]:
        return {
            "action_mask": _compute_action_mask(self.game),
            "valid_actions": self.game.get_valid_actions(),
            "score": self.game.score,
            "combo": self.game.scoring.combo,
        }

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        if seed is None:
            seed = int(self.np_random.integers(0, 2**31 - 1))
        self.game.new_game(seed)
        self._steps = 0
        return self._get_obs(), self._get_info()

    def step(self, action):
        slot, x, y = map(int, action)

        score_before = self.game.score
        piece = self.game.bag_manager.get_piece(slot)
        outcome = self.game.place_piece(slot, x, y)
        events = list(outcome.events)
        if outcome.pending_clear:
            events.extend(self.game.resolve_clear().events)

        reward_components: Dict[str, float] = {}
        if outcome.placed:
            reward_components["cells"] = self.cell_reward * float(piece.cell_count)
            reward_components["score"] = float(self.game.score - score_before)
        else:
            reward_components["invalid"] = self.invalid_action_penalty

        terminated = self.game.is_game_over
        if terminated:
            reward_components["terminal"] = self.terminal_penalty
        self._steps += 1
        truncated = self._steps >= self.max_episode_steps

        reward = float(sum(reward_components.values()))
        info = self._get_info()
        info["reward_components"] = reward_components
        info["events"] = [e.value for e in events]
        return self._get_obs(), reward, terminated, truncated, info

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode != "rgb_array":
            return None
        grid = self.game.board
        cell = 12
        h, w = grid.shape
        img = np.zeros((h * cell, w * cell, 3), dtype=np.uint8)
        for y in range(h):
            for x in range(w):
                color = (230, 90, 60) if grid[y, x] else (30, 30, 36)
                img[y * cell : (y + 1) * cell, x * cell : (x + 1) * cell, :] = color
        return img

    def close(self) -> None:
        pass
