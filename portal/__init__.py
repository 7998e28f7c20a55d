"""
IEEE Chapter Portal - admin client for the chapter website backend
"""

__version__ = "1.0.0"
