"""
Sprout knowledge base.

Contains clinical reference knowledge:
- CDC infant growth charts (weight, length, head circumference)
"""
