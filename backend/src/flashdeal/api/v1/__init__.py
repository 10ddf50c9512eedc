"""API v1 routers."""

from flashdeal.api.v1 import flash_deals

__all__ = ["flash_deals"]
