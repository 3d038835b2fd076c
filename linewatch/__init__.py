"""
Linewatch - NBA projection line-movement tracker.

Pulls the partner projections board, diffs each refresh against the previous
batch and reports which lines moved, in which direction and by how much.
"""

__version__ = "1.0.0"
