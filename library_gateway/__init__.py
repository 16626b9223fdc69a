"""Library Gateway - reservation orchestration package

This package contains the gateway modules:
- Reservation workflow (reservations.py)
- Rating lookup (rating.py)
- HTTP API (api.py)
- CLI interface (main.py)
- Domain models (models.py)
- Collaborator service clients (services/)
"""
