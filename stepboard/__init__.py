"""Stepboard: step challenge leaderboard backed by Google Fit."""

__version__ = "0.1.0"
