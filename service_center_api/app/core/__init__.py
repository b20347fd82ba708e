"""
Configuration, persistence, security and shared enumerations.
"""
