"""
inventorystore - a product inventory with in-memory and JSON-file backends.
"""

__version__ = "0.1.0"
