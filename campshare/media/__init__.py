"""
Media Module
-----------
Stores uploaded campground photos and deletes them by identifier.
Uses Pillow to re-encode uploads and build thumbnails.
"""
