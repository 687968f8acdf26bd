"""
ShelfReader test suite.
"""
