import os
import unittest
from unittest.mock import patch

from prizeledger.token import TokenLedger
from prizeledger.token.api import TokenClient


class DummyResponse:
    def __init__(self, json_data=None, content: bytes = b""):
        self._json = json_data
        if json_data is not None and not content:
            import json as _json

            content = _json.dumps(json_data).encode()
        self.content = content

    def json(self):
        return self._json

    def raise_for_status(self):
        pass


class DummySession:
    def __init__(self, response: DummyResponse):
        self.response = response
        self.calls = []

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "params": params,
                "json": json,
                "timeout": timeout,
            }
        )
        return self.response


class TestTokenClient(unittest.TestCase):
    def _client(self, mock_open_session, response=None) -> tuple[TokenClient, DummySession]:
        session = DummySession(response or DummyResponse(json_data={}))
        mock_open_session.return_value = session
        client = TokenClient(account="0xLedger", base_fqdn="tokens.example.com")
        return client, session

    @patch("prizeledger.token.api.open_session")
    @patch("prizeledger.token.api.load_dotenv")
    def test_requires_fqdn(self, mock_load_dotenv, mock_open_session):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                TokenClient(account="0xLedger")
        mock_open_session.assert_not_called()

    @patch("prizeledger.token.api.open_session")
    @patch("prizeledger.token.api.load_dotenv")
    def test_requires_ledger_account(self, mock_load_dotenv, mock_open_session):
        with patch.dict(os.environ, {"TOKEN_API_BASE_FQDN": "tokens.example.com"}, clear=True):
            with self.assertRaises(ValueError) as ctx:
                TokenClient()
        self.assertIn("LEDGER_IDENTITY", str(ctx.exception))
        mock_open_session.assert_not_called()

    @patch("prizeledger.token.api.get_jwt_token", return_value="jwt-token")
    @patch("prizeledger.token.api.open_session")
    def test_init_sets_base_url_and_token(self, mock_open_session, mock_get_jwt):
        client, _ = self._client(mock_open_session)
        self.assertEqual(client.base_url, "https://tokens.example.com")
        self.assertEqual(client.account, "0xLedger")
        self.assertEqual(client.jwt, "jwt-token")
        self.assertEqual(client.auth_headers["Authorization"], "Bearer jwt-token")
        self.assertIsInstance(client, TokenLedger)

    @patch("prizeledger.token.api.get_jwt_token", return_value="jwt-token")
    @patch("prizeledger.token.api.open_session")
    def test_balance_is_parsed_from_decimal_string(self, mock_open_session, mock_get_jwt):
        balance = 12_345 * 10**18
        client, session = self._client(
            mock_open_session, DummyResponse(json_data={"balance": str(balance)})
        )
        self.assertEqual(client.balance_of("0xLedger"), balance)
        call = session.calls[0]
        self.assertEqual(call["method"], "GET")
        self.assertEqual(
            call["url"], "https://tokens.example.com/api/v1/tokens/balances/0xLedger"
        )

        session.response = DummyResponse(json_data={"error": "unknown account"})
        with self.assertRaises(ValueError):
            client.balance_of("0xLedger")

    @patch("prizeledger.token.api.get_jwt_token", return_value="jwt-token")
    @patch("prizeledger.token.api.open_session")
    def test_transfer_sends_amount_as_string(self, mock_open_session, mock_get_jwt):
        client, session = self._client(
            mock_open_session, DummyResponse(json_data={"status": "success"})
        )
        amount = 300 * 10**18
        self.assertTrue(client.transfer("0xPlayer", amount))
        call = session.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["url"], "https://tokens.example.com/api/v1/tokens/transfer")
        self.assertEqual(
            call["json"], {"from": "0xLedger", "to": "0xPlayer", "amount": str(amount)}
        )
        self.assertEqual(call["timeout"], 45)

        session.response = DummyResponse(json_data={"status": "failed"})
        self.assertFalse(client.transfer("0xPlayer", amount))

    @patch("prizeledger.token.api.get_jwt_token", return_value="jwt-token")
    @patch("prizeledger.token.api.open_session")
    def test_transfer_from_names_the_spender(self, mock_open_session, mock_get_jwt):
        client, session = self._client(
            mock_open_session, DummyResponse(json_data={"status": "success"})
        )
        self.assertTrue(client.transfer_from("0xAdmin", "0xLedger", 10))
        self.assertEqual(
            session.calls[0]["json"],
            {"spender": "0xLedger", "from": "0xAdmin", "to": "0xLedger", "amount": "10"},
        )

    @patch("prizeledger.token.api.get_jwt_token", return_value="jwt-token")
    @patch("prizeledger.token.api.open_session")
    def test_empty_response_is_not_success(self, mock_open_session, mock_get_jwt):
        client, _ = self._client(mock_open_session, DummyResponse())
        self.assertFalse(client.approve("0xSpender", 1))

    @patch("prizeledger.token.api.get_jwt_token")
    @patch("prizeledger.token.api.open_session")
    def test_init_reports_session_error(self, mock_open_session, mock_get_jwt):
        mock_open_session.side_effect = RuntimeError("network unreachable")
        with self.assertRaises(RuntimeError) as ctx:
            TokenClient(account="0xLedger", base_fqdn="tokens.example.com")
        self.assertIn("network unreachable", str(ctx.exception))
        mock_get_jwt.assert_not_called()


if __name__ == "__main__":
    unittest.main()
