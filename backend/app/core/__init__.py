# app/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Role/permission seeding and default admin creation
- clock: Mockable "now" used by every time-based rule
- db: Database configuration and connection management
- errors: Business error taxonomy and its JSON rendering
- locks: Non-overlap locks for scheduled jobs
- security: Password hashing, session tokens and verification code hashing
"""
