"""Library Gateway - Services Package

This package contains clients for the collaborator services:
- Library catalog service
- Rating service
- Reservation service
- Shared HTTP client abstraction
"""
