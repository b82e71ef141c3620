"""
Track event enricher.
"""
