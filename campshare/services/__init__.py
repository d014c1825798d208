"""
Services Module
--------------
Aggregate services for campgrounds, reviews and user authentication.
Routes call into these; they own persistence and talk to the geocoding and media collaborators.
"""
