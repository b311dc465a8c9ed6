"""
Tabular data helpers built on the mapper.
"""
