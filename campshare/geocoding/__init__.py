"""
Geocoding Module
--------------
Handles forward geocoding to convert human-readable locations into geographic coordinates.
Uses OpenStreetMap's Nominatim API with caching and retries.
"""
