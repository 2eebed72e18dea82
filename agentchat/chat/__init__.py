"""Chat turn orchestration."""
