"""
Configuration service package initialization.

This module makes the configuration service directory a Python package,
allowing the compatibility, required group, pricing and validation modules
to be imported and organized in a modular structure.
"""
