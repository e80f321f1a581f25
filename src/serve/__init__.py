"""Read-side access to registered variant files.

This module resolves samples, loads variation windows, and runs
directional nearest-variation searches.
"""
