"""
Operators (tenants) application.

Every fleet record belongs to exactly one operator. Operators flagged as
super bypass operator scoping and act as platform administrators.
"""
