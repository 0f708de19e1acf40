"""Version 1 of the itemzip API."""
