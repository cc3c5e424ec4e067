"""
Result models, parsing, grouping, metrics and comparison engines.
"""
