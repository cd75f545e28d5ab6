"""Request models for the auth watchdog API."""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Constants
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

# ==============================================================================
# REQUEST MODELS
# ==============================================================================


class NavigationRequest(BaseModel):
    """A client-side route change reported to the watchdog.

    The path is what the navigation trigger debounces on. ``search`` and
    ``state`` are carried through to the login redirect's ``from`` state.
    """

    path: str = Field(
        ...,
        min_length=1,
        max_length=2048,
        description="Route path the client navigated to",
        examples=["/dashboard"],
    )
    search: str = Field(
        default="",
        max_length=2048,
        description="Query string including the leading '?'",
        examples=["?tab=settings"],
    )
    state: Optional[Dict[str, Any]] = Field(
        default=None, description="Opaque navigation state"
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        v = v.strip()
        if not v.startswith("/"):
            raise ValueError("Path must start with '/'")
        return v

    @field_validator("search")
    @classmethod
    def validate_search(cls, v):
        v = v.strip()
        if v and not v.startswith("?"):
            v = f"?{v}"
        return v


class LoginRequest(BaseModel):
    """Email/password sign-in forwarded to Supabase GoTrue."""

    email: str = Field(..., min_length=3, max_length=320, examples=["user@example.com"])
    password: str = Field(..., min_length=1, max_length=1024)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.strip()
        if "@" not in v:
            raise ValueError("Email must contain '@'")
        return v


class WatchdogCheckRequest(BaseModel):
    """Manual reconciliation request.

    Without a path the check runs against the navigator's current location.
    """

    path: Optional[str] = Field(default=None, examples=["/dashboard"])

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v.startswith("/"):
            raise ValueError("Path must start with '/'")
        return v
