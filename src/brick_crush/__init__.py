"""Brick Crush: deterministic engine for an 8x8 block-placement puzzle."""

__version__ = "0.1.0"
