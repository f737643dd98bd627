"""
Catalog access package.

Defines the read-only catalog contract consumed by the configuration engine
and an in-memory implementation used by batch jobs and tests.
"""
