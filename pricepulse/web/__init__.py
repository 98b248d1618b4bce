"""
pricepulse Web 服务模块
"""

from pricepulse.web.app import create_app

__all__ = ["create_app"]
