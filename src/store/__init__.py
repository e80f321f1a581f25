"""Storage layer for registered variant files.

This module persists the file catalog, reference genomes, interval
metadata, and the Lance-backed feature index behind the SDK client.
"""
