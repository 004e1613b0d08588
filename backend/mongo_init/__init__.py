"""
MongoDB index initialisation for the food-delivery services.
"""
__version__ = "0.1.0"
