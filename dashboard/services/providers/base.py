from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from dashboard.schemas import EmailPage, EmailQuery, ExternalAccount, ProviderDescription


class EmailProvider(ABC):
    """An external email service users can link to their dashboard through OAuth2"""

    @abstractmethod
    def description(self) -> ProviderDescription:
        pass

    @property
    def name(self) -> str:
        return self.description().name

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """URL of the provider consent page; ``state`` comes back on the callback"""

    @abstractmethod
    def exchange_code(self, code: str) -> Dict[str, Any]:
        """Exchange an authorization code for a token, returned as a JSON-able dict"""

    @abstractmethod
    def current_email_address(self, account: ExternalAccount) -> str:
        pass

    @abstractmethod
    def get_items(
        self,
        account: ExternalAccount,
        query: EmailQuery,
        page_token: Optional[str] = None
    ) -> EmailPage:
        pass
