"""
Schema package for catalog snapshots and validation verdicts.
"""
