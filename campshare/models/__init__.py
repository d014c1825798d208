"""
Data Models Module
----------------
Contains Pydantic models for request validation.
Defines the shape of campground, review and user submissions with appropriate field types and constraints.
"""
