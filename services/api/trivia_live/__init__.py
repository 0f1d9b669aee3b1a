"""
Trivia Live - live multi-team trivia game server.
"""
__version__ = "1.0.0"
