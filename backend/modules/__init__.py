"""
Feature modules for the Stickerlab backend.

Each module is self-contained with its own:
- interfaces.py: Protocol definitions for the module's public API
- models.py: Pydantic models for data transfer
- service.py: Business logic implementation
- exceptions.py: Module-specific exceptions

Modules communicate through interfaces, not concrete implementations.
HTTP routes live in api/routes and depend on the interfaces only.
"""
