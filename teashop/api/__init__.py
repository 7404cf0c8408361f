"""
API blueprints for the tea shop backend.
"""
