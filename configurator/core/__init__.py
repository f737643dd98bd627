"""
Core package for shared utilities.

This module makes the core directory a Python package, enabling proper
import resolution for settings and structured logging shared across the
configurator engine.
"""
