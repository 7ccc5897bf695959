"""
RBAC (Role-Based Access Control) application.

Provides operator-scoped access control with:
- Users bound to exactly one operator and one role
- Roles holding "resource.action" grants
- Cached permission evaluation with super-operator bypass
- Audit logging
"""
