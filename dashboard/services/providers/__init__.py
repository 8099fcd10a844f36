from typing import Dict, List

from dashboard.config import Settings
from dashboard.repository import Repository
from dashboard.services.providers.base import EmailProvider
from dashboard.services.providers.gmail import GmailProvider
from dashboard.services.providers.outlook import OutlookProvider


def create_providers(settings: Settings, repository: Repository) -> Dict[str, EmailProvider]:
    """Providers keyed by name, limited to those with OAuth2 client credentials configured"""
    providers: List[EmailProvider] = []
    if settings.GOOGLE_CLIENT_ID:
        providers.append(GmailProvider(settings, repository))
    if settings.OUTLOOK_CLIENT_ID:
        providers.append(OutlookProvider(settings))
    return {provider.name: provider for provider in providers}


__all__ = ["EmailProvider", "GmailProvider", "OutlookProvider", "create_providers"]
