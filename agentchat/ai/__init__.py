"""Model access, prompts and tools."""
