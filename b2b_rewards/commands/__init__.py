"""
CLI Commands for the rewards service.

Usage:
    flask rewards current-quarter
    flask rewards recompute --quarter 1 --year 2025
    flask rewards process --quarter 1 --year 2025 --actor-id 1
"""
from .rewards import init_app as init_reward_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_reward_commands(app)
