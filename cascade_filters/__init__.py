"""
Cascading reference-data resolver and URL-synchronized filter state.
"""
