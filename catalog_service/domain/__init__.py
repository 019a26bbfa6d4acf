"""
Domain layer - Core catalog entities and exceptions.

This layer contains the normalized value objects handed to collaborators,
independent of the upstream API shape or any framework concerns.
"""
