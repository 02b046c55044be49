"""
Service layer: business rules composed over repositories and storage.
"""
