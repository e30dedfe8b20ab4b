"""
termhook - capture terminal output and serve it to local tooling.
"""

__version__ = "1.0.0"
