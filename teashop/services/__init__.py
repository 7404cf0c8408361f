"""
Business services for the tea shop backend.
"""
