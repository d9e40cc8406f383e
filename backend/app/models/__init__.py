# app/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- Account: Identity record (credentials, state flags, role)
- Role / Permission / RolePermission: Explicit role-permission catalog
- VerificationCode: Reactivation and password reset codes
- Session: Server-side login sessions
- JobLock: Non-overlap marker for scheduled jobs
"""
from .role import Role, Permission, RolePermission
from .account import Account, AccountState, AuthProvider
from .verification_code import VerificationCode, CodePurpose
from .session import Session
from .job_lock import JobLock
