"""
Operations application: freight jobs, driver-vehicle assignments,
batch import from spreadsheets and PDF reports.
"""
