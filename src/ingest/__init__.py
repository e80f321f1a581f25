"""Variant file ingestion.

This module acquires variant files by source kind and streams their
records into interval metadata and the feature index.
"""
