"""
Clients package - outbound integrations
"""

from .erp_client import ErpClient, ErpResult

__all__ = ['ErpClient', 'ErpResult']
