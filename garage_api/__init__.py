"""
Garage Management API.
"""
