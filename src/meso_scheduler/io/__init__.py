"""Persistence and serialization for meso-scheduler."""
