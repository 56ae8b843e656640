"""
Advisor feedback feature package.

This vertical slice keeps every layer of the advisor feedback lifecycle
co-located (domain models, repository, services and API router). Import
from the subpackages directly; the security and validation utilities
depend on the domain models, so this package stays import-free.
"""
