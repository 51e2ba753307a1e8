"""Gymnasium environments for Brick Crush."""

from __future__ import annotations

from gymnasium.envs.registration import register

from .brick_crush_env import BrickCrushEnv
from .wrappers import FlattenDiscreteActionWrapper, ResampleInvalidActionWrapper

register(
    id="BrickCrush-8x8-v0",
    entry_point="brick_crush.env.brick_crush_env:BrickCrushEnv",
)

__all__ = [
    "BrickCrushEnv",
    "FlattenDiscreteActionWrapper",
    "ResampleInvalidActionWrapper",
]
