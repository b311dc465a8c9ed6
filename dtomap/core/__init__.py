"""
Core infrastructure for dtomap: configuration, errors and logging.
"""
