"""
API subpackage for the advisor feedback feature.
"""
