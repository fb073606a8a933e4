"""Request-scoped access to collaborators built in the app lifespan."""
from fastapi import Request

from admarket.services.overlay_engine import OverlayEngine
from admarket.services.wallet_client import WalletClient


def get_overlay_engine(request: Request) -> OverlayEngine:
    return request.app.state.overlay_engine


def get_wallet(request: Request) -> WalletClient:
    return request.app.state.wallet
