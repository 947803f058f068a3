"""
Participium - municipal civic reporting API.
"""

__version__ = "0.1.0"
