"""Zip import and export of content item trees."""
