"""
Pure scheduling primitives.

Nothing in this package reads configuration, the clock or the database;
every function returns the same result for the same inputs.
"""
