"""Middleware module for Football Auth."""

from football_auth.middleware.authentication import GatekeeperMiddleware

__all__ = ["GatekeeperMiddleware"]
