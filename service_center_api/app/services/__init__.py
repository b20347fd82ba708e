"""
Service layer.

Each service encapsulates the business logic and SQL of one domain so
API handlers stay thin.
"""
