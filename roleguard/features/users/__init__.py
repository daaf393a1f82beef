"""
User feature module: the authenticated user model, bearer authentication
and the role/permission assignment routes.
"""
