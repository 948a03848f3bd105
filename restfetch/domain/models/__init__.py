"""Domain value objects and state snapshots."""
