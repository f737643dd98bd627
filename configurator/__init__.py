"""
Vehicle configurator option compatibility and pricing engine.

This package decides which combinations of optional equipment are legal for a
car, pre-fills mandatory choices, and computes deterministic prices for a
buyer's selection.
"""

__version__ = "1.0.0"
