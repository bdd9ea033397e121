"""Geocoding, routing and route matching services."""
