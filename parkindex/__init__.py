"""
Parking Slot Index

Parking slot inventory kept in an AVL-balanced index keyed by slot number.
"""

__version__ = "1.0.0"
