"""Streamer cleaning tracker: section addressing and coverage statistics."""
