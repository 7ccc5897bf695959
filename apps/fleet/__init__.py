"""
Fleet application: drivers, vehicles, vehicle documents and
driver-vehicle assignments.
"""
