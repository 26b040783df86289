"""Live channel registry and group membership."""
