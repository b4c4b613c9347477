"""
Core runtime pieces shared across mcpmux.
"""
