"""Comparison series and lap time statistics."""
