import json
from typing import Any, Dict, List, Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

from dashboard.config import Settings
from dashboard.exceptions import InvalidInputError
from dashboard.logging_config import get_logger
from dashboard.repository import Repository
from dashboard.schemas import (
    SERVICE_EMAIL,
    EmailItem,
    EmailPage,
    EmailQuery,
    ExternalAccount,
    ProviderDescription,
)
from dashboard.services.providers.base import EmailProvider
from dashboard.utils.date_utils import from_epoch_millis

logger = get_logger(__name__)

SCOPES = [
    'https://www.googleapis.com/auth/gmail.readonly',
    'https://www.googleapis.com/auth/userinfo.email',
    'openid'
]
INBOX_LINK = "https://mail.google.com/mail/#inbox/"


def _header(message: dict, name: str) -> Optional[str]:
    headers = message.get("payload", {}).get("headers", [])
    return next((h["value"] for h in headers if h["name"] == name), None)


def email_item_from_thread(thread: dict) -> EmailItem:
    """
    Summarize a Gmail thread as a single email item.

    The subject is the first message's; the snippet and sender come from
    the last unread message, or the last message when everything is read.
    The sender gets a participant count when several people wrote in the
    thread.

    Args:
        thread: Gmail thread resource including its messages

    Returns:
        EmailItem keyed by the thread id

    Raises:
        InvalidInputError: If the thread has no message or a message has no sender
    """
    messages = thread.get("messages") or []
    if not messages:
        raise InvalidInputError(f"No message in thread {thread.get('id')}")

    senders = set()
    unread = []
    for message in messages:
        sender = _header(message, "From")
        if sender is None:
            raise InvalidInputError(f"Unable to retrieve thread sender for msg {message.get('id')}")
        senders.add(sender)
        if "UNREAD" in message.get("labelIds", []):
            unread.append(message)

    first, last = messages[0], messages[-1]
    main = unread[-1] if unread else last

    snippet = main.get("snippet", "")
    if len(unread) > 1:
        snippet = "[...] - " + snippet

    sender = _header(main, "From")
    if sender.find("<") > 1:
        sender = sender[:sender.find("<")].strip()
    if len(senders) > 1:
        sender = f"{sender} ({len(senders)})"

    return EmailItem(
        guid=thread["id"],
        title=_header(first, "Subject") or "",
        published=from_epoch_millis(last.get("internalDate", 0)),
        link=INBOX_LINK + thread["id"],
        read=not unread,
        sender=sender,
        snippet=snippet
    )


class GmailProvider(EmailProvider):
    """Gmail through the Google API client; threads are cached by history id"""

    def __init__(self, settings: Settings, repository: Repository):
        self.settings = settings
        self.repository = repository

    def description(self) -> ProviderDescription:
        return ProviderDescription(
            name="google",
            title="Gmail",
            link="https://gmail.com",
            services=[SERVICE_EMAIL]
        )

    def _flow(self) -> Flow:
        return Flow.from_client_config(
            {
                "web": {
                    "client_id": self.settings.GOOGLE_CLIENT_ID,
                    "client_secret": self.settings.GOOGLE_CLIENT_SECRET,
                    "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                    "token_uri": "https://oauth2.googleapis.com/token",
                    "redirect_uris": [self.settings.GOOGLE_REDIRECT_URI]
                }
            },
            scopes=SCOPES,
            redirect_uri=self.settings.GOOGLE_REDIRECT_URI,
            autogenerate_code_verifier=False
        )

    def authorization_url(self, state: str) -> str:
        url, _ = self._flow().authorization_url(
            state=state,
            access_type='offline',
            include_granted_scopes='true',
            prompt='consent'
        )
        return url

    def exchange_code(self, code: str) -> Dict[str, Any]:
        flow = self._flow()
        flow.fetch_token(code=code)
        return json.loads(flow.credentials.to_json())

    def _service(self, account: ExternalAccount):
        credentials = Credentials.from_authorized_user_info(account.token or {}, SCOPES)
        return build('gmail', 'v1', credentials=credentials, cache_discovery=False)

    def current_email_address(self, account: ExternalAccount) -> str:
        profile = self._service(account).users().getProfile(userId='me').execute()
        return profile["emailAddress"]

    def get_items(
        self,
        account: ExternalAccount,
        query: EmailQuery,
        page_token: Optional[str] = None
    ) -> EmailPage:
        service = self._service(account)

        label_ids = ["INBOX"]
        if query.category:
            label_ids.append(query.category)

        response = service.users().threads().list(
            userId='me',
            labelIds=label_ids,
            maxResults=self.settings.EMAIL_PAGE_SIZE,
            pageToken=page_token
        ).execute()

        threads = response.get("threads", [])
        logger.info(f"Got {len(threads)} threads for account {account.id}")

        items: List[EmailItem] = []
        for thread in threads:
            version = int(thread.get("historyId", 0))
            item = self.repository.get_email_item(account, thread["id"], version)
            if item is None:
                full_thread = service.users().threads().get(
                    userId='me',
                    id=thread["id"],
                    format='metadata',
                    metadataHeaders=['Subject', 'From']
                ).execute()
                item = email_item_from_thread(full_thread)
                self.repository.store_email_item(account, version, item)
            items.append(item)

        return EmailPage(
            items=items,
            next_page_token=response.get("nextPageToken"),
            result_size_estimate=response.get("resultSizeEstimate", 0)
        )
