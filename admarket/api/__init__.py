"""API router registry used by the app factory.

This keeps route module imports and inclusion order in one place so
`admarket.main` stays focused on startup wiring.
"""

from __future__ import annotations

from fastapi import APIRouter

from . import campaigns, health, overlay

API_PREFIX = "/api/v1"

API_ROUTERS: tuple[APIRouter, ...] = (
    health.router,
    overlay.router,
    campaigns.router,
)

__all__ = ["API_PREFIX", "API_ROUTERS"]
