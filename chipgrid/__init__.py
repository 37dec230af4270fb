"""
Chipgrid - Numbered-card placement game engine

A deterministic rules engine for a 2-6 player game on a shared 10x10
numbered board, plus the synchronization shell that runs it over a shared
document store. Provides:
- Board topology, deck, placement validation and win detection
- The turn state machine, team turn order and forfeits
- A scripted bot
- Lobby, game, host-driver and presence services
"""

__version__ = "0.1.0"
