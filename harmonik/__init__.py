"""Harmonious Habitats form draft persistence."""
