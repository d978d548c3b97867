"""
Configuration: application settings and the .bot file loader.
"""
