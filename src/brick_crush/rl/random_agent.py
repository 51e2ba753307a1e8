from __future__ import annotations

import argparse
import logging
import random
from typing import Dict, Optional

import gymnasium as gym

import brick_crush.env  # noqa: F401  (registers BrickCrush-8x8-v0)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run_random(steps: int = 200, seed: Optional[int] = None) -> Dict[str, float]:
    """Play uniformly random valid moves; returns totals over all episodes."""
    env = gym.make("BrickCrush-8x8-v0")
    chooser = random.Random(seed)
    obs, info = env.reset(seed=seed)
    total_reward = 0.0
    episodes = 0
    best_score = 0
    for _ in range(steps):
        valid = info.get("valid_actions", [])
        if valid:
            action = chooser.choice(valid)
        else:
            action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += float(reward)
        best_score = max(best_score, int(info["score"]))
        if terminated or truncated:
            episodes += 1
            logger.info("Episode %d finished with score %d", episodes, info["score"])
            obs, info = env.reset()
    env.close()
    logger.info("Random agent total reward: %.2f over %d finished episode(s)", total_reward, episodes)
    return {"total_reward": total_reward, "episodes": float(episodes), "best_score": float(best_score)}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run a random agent on Brick Crush")
    p.add_argument("--steps", type=int, default=200)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Optional[list] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    run_random(args.steps, args.seed)


if __name__ == "__main__":  # pragma: no cover
    main()
