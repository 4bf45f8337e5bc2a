"""meso-scheduler: mesocycle progression and schedule projection."""

__version__ = "0.1.0"
