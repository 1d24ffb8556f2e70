"""Read-only sandbox for agent file requests."""
