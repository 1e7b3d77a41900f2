"""
scorekeeper
Tournament registration and eligibility engine.
"""
__version__ = "1.0.0"
