"""
FlashDeck - terminal client for spaced-repetition review and practice sessions
"""

__version__ = "0.1.0"
