"""
RBAC (Role-Based Access Control) application.

Provides club access control with:
- User identity with a declared role and a canonical role reference
- Role and direct user grants, optionally resource-scoped and expiring
- Permission resolution with aliases, scope suffixes and a per-role baseline
- Signed bearer tokens carrying a permission snapshot
"""
