"""
Partners application: clients served by an operator and providers
(subcontracted carriers) working for it.
"""
