"""
Ignition: requirements, risks, tests and configuration items with a
GitHub-backed project file, an audit trail and AI assistance.
"""

__version__ = "1.0.0"
