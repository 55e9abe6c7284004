"""Data structures for samples, laps and recordings."""
