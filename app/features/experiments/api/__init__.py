"""
API subpackage for the career experiments feature.
"""
