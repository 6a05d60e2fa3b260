"""
Application Layer

Contains:
- search: the aggregation pipeline and its stages
"""
