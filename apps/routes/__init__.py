"""
Routes application: the operator's catalog of tramos (named origin to
destination legs).
"""
