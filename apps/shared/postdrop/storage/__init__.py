"""Storage backends and the post store."""
