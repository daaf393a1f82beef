"""
roleguard - role and permission based access control for SQLAlchemy user models.
"""
