"""
growthtrack knowledge base.

Contains the national growth reference tables and their parser.
"""
