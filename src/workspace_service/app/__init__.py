"""Application wiring: lifespan and dependency factories."""
