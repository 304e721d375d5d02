"""
Athletes application: athlete records and profile normalisation.
"""
