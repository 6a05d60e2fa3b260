"""
Infrastructure Layer

Contains:
- sources: provider adapters for external literature databases
"""
