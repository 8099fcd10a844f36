from typing import Any, Dict, Optional

from requests_oauthlib import OAuth2Session

from dashboard.config import Settings
from dashboard.logging_config import get_logger
from dashboard.schemas import (
    SERVICE_EMAIL,
    EmailItem,
    EmailPage,
    EmailQuery,
    ExternalAccount,
    ProviderDescription,
)
from dashboard.services.providers.base import EmailProvider

logger = get_logger(__name__)

AUTHORITY = "https://login.microsoftonline.com/common/oauth2/v2.0"
GRAPH_URL = "https://graph.microsoft.com/v1.0"
SCOPES = ["offline_access", "User.Read", "Mail.Read"]
MESSAGE_FIELDS = "subject,sender,receivedDateTime,bodyPreview,isRead,webLink"


class OutlookProvider(EmailProvider):
    """Outlook.com mailboxes through Microsoft Graph; items are not cached"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def description(self) -> ProviderDescription:
        return ProviderDescription(
            name="outlook",
            title="Outlook.com",
            link="http://outlook.live.com",
            services=[SERVICE_EMAIL]
        )

    def _session(self, token: Optional[Dict[str, Any]] = None, state: Optional[str] = None) -> OAuth2Session:
        return OAuth2Session(
            self.settings.OUTLOOK_CLIENT_ID,
            scope=SCOPES,
            redirect_uri=self.settings.OUTLOOK_REDIRECT_URI,
            state=state,
            token=token,
            auto_refresh_url=f"{AUTHORITY}/token",
            auto_refresh_kwargs={
                "client_id": self.settings.OUTLOOK_CLIENT_ID,
                "client_secret": self.settings.OUTLOOK_CLIENT_SECRET,
            }
        )

    def authorization_url(self, state: str) -> str:
        url, _ = self._session(state=state).authorization_url(f"{AUTHORITY}/authorize")
        return url

    def exchange_code(self, code: str) -> Dict[str, Any]:
        token = self._session().fetch_token(
            f"{AUTHORITY}/token",
            code=code,
            client_secret=self.settings.OUTLOOK_CLIENT_SECRET
        )
        return dict(token)

    def _get(self, account: ExternalAccount, url: str) -> dict:
        response = self._session(token=account.token).get(url, timeout=30)
        response.raise_for_status()
        return response.json()

    def current_email_address(self, account: ExternalAccount) -> str:
        me = self._get(account, f"{GRAPH_URL}/me")
        return me.get("mail") or me.get("userPrincipalName", "")

    def get_items(
        self,
        account: ExternalAccount,
        query: EmailQuery,
        page_token: Optional[str] = None
    ) -> EmailPage:
        folder = query.category or "inbox"
        url = page_token or (
            f"{GRAPH_URL}/me/mailFolders/{folder}/messages"
            f"?$count=true&$top={self.settings.EMAIL_PAGE_SIZE}&$select={MESSAGE_FIELDS}"
        )

        data = self._get(account, url)
        items = [
            EmailItem(
                guid=message["id"],
                title=message.get("subject") or "",
                published=message["receivedDateTime"],
                link=message.get("webLink", ""),
                read=message.get("isRead", False),
                sender=message.get("sender", {}).get("emailAddress", {}).get("name", ""),
                snippet=message.get("bodyPreview", "")
            )
            for message in data.get("value", [])
        ]
        logger.info(f"Got {len(items)} messages for account {account.id}")

        return EmailPage(
            items=items,
            next_page_token=data.get("@odata.nextLink"),
            result_size_estimate=data.get("@odata.count", len(items))
        )
