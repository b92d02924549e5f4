"""
Satarknity - Backend Module
Client for the hosted auth, storage and table services.
"""

from satarknity.backend.client import BackendClient
from satarknity.backend.auth_api import AuthAPI, AuthSession, User
from satarknity.backend.storage_api import StorageAPI
from satarknity.backend.table_api import TableAPI

__all__ = [
    "BackendClient",
    "AuthAPI",
    "AuthSession",
    "User",
    "StorageAPI",
    "TableAPI",
]
