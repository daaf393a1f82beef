"""
Role and permission feature module.

Implements role based access control with level cascading, direct user
permissions and entity scoped permissions. Models are attached to a user
class through the HasRoleAndPermission mixin.
"""
