"""Archive, live feed and statistics services."""
