"""
TFT Scout - game state extraction from Teamfight Tactics screenshots.
"""

__version__ = "0.1.0"
