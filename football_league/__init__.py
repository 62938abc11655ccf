"""
Football league engine: fixture scheduling, match resolution, standings and
automatic season advancement over a persistent SQLite store.
"""
__version__ = "0.1.0"
