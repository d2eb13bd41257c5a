import os
from urllib.parse import urljoin
from dotenv import load_dotenv
from .utils import open_session, get_jwt_token
from typing import Any, Optional, Mapping


class TokenClient:
    """HTTP client for a token service, acting as the ledger's own account.

    Amounts travel as decimal strings so 18-decimal balances survive JSON.
    """

    def __init__(
        self,
        account: Optional[str] = None,
        base_fqdn: Optional[str] = None,
        timeout: int = 45,
    ):
        load_dotenv()
        fqdn = base_fqdn or os.getenv("TOKEN_API_BASE_FQDN")
        if not fqdn:
            raise ValueError("Environment variable 'TOKEN_API_BASE_FQDN' is not set")
        account = account or os.getenv("LEDGER_IDENTITY")
        if not account:
            raise ValueError("Environment variable 'LEDGER_IDENTITY' is not set")

        self.base_url = f"https://{fqdn}".rstrip("/")
        self.account = account
        self.session = open_session()
        self.jwt = get_jwt_token(self.session)
        self.timeout = timeout

    # -------- headers --------
    @property
    def public_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json"}

    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.jwt}"}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=headers or self.public_headers,
            params=params,
            json=json,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    @staticmethod
    def _succeeded(response: Any) -> bool:
        return isinstance(response, dict) and response.get("status") == "success"

    # -------- API callers --------
    def balance_of(self, account: str) -> int:
        response = self._request(
            "GET",
            f"/api/v1/tokens/balances/{account}",
            headers=self.auth_headers,
        )
        if not isinstance(response, dict) or "balance" not in response:
            raise ValueError(f"Unexpected balance response: {response!r}")
        return int(response["balance"])

    def transfer(self, to: str, amount: int) -> bool:
        response = self._request(
            "POST",
            "/api/v1/tokens/transfer",
            json={"from": self.account, "to": to, "amount": str(amount)},
            headers=self.auth_headers,
        )
        return self._succeeded(response)

    def transfer_from(self, sender: str, to: str, amount: int) -> bool:
        response = self._request(
            "POST",
            "/api/v1/tokens/transfer-from",
            json={
                "spender": self.account,
                "from": sender,
                "to": to,
                "amount": str(amount),
            },
            headers=self.auth_headers,
        )
        return self._succeeded(response)

    def approve(self, spender: str, amount: int) -> bool:
        response = self._request(
            "POST",
            "/api/v1/tokens/approve",
            json={"owner": self.account, "spender": spender, "amount": str(amount)},
            headers=self.auth_headers,
        )
        return self._succeeded(response)
