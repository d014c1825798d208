"""
API Module
---------
Provides RESTful API endpoints for the campground sharing service using FastAPI.
Features include:
- Registering, logging in and out with cookie sessions
- Listing, searching and paginating campgrounds
- Creating, editing and deleting campgrounds with photos (authors only)
- Adding and removing reviews
- Health, version and admin maintenance endpoints
"""
