"""Expiry alert collaborators"""
from .base import BaseAlertService
from .alert_service import DesktopAlertService

__all__ = ['BaseAlertService', 'DesktopAlertService']
