"""
Authentication package for the API server.

This package contains Supabase JWT verification for the protected
diagnostics endpoints.
"""

from .jwt_auth import verify_supabase_jwt

__all__ = [
    'verify_supabase_jwt'
]
