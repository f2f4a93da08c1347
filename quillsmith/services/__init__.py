"""External capabilities: completion backends and content discovery."""
