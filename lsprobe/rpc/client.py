"""GetUserStatus caller for the local language server.

The language server serves a self-signed certificate on loopback, so
certificate verification is off for this one host.
"""

import httpx
from pydantic import ValidationError

from ..config import ProbeConfig, get_config
from ..discovery.orchestrator import LanguageServerDiscovery
from ..errors import LanguageServerRequestError
from ..utils.logging import get_logger, mask_secret
from .schemas import UserStatusResponse

logger = get_logger("rpc.client")

GET_USER_STATUS_PATH = "/exa.language_server_pb.LanguageServerService/GetUserStatus"
CSRF_HEADER = "x-codeium-csrf-token"

# Mirrors the IDE's own renderer request so the server treats it the same way
BROWSER_HEADERS = {
    "accept": "*/*",
    "accept-language": "en-US",
    "connect-protocol-version": "1",
    "content-type": "application/json",
    "priority": "u=1, i",
    "sec-ch-ua": '"Not)A;Brand";v="8", "Chromium";v="138"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"Windows"',
    "sec-fetch-dest": "empty",
    "sec-fetch-mode": "cors",
    "sec-fetch-site": "cross-site",
}


class LanguageServerClient:
    """One-shot RPC calls against the language server's HTTPS port."""

    def __init__(self, config: ProbeConfig | None = None):
        self.config = config or get_config()

    def build_url(self, port: int) -> str:
        return f"https://{self.config.rpc_host}:{port}{GET_USER_STATUS_PATH}"

    def build_body(self, api_key: str) -> dict:
        return {
            "metadata": {
                "ideName": self.config.ide_name,
                "apiKey": api_key,
                "locale": self.config.locale,
                "ideVersion": self.config.ide_version,
                "extensionName": self.config.extension_name,
            }
        }

    def build_headers(self, csrf_token: str) -> dict:
        headers = dict(BROWSER_HEADERS)
        headers[CSRF_HEADER] = csrf_token
        return headers

    async def get_user_status(self, api_key: str, port: int, csrf_token: str) -> UserStatusResponse:
        """POST GetUserStatus and parse the reply.

        Raises:
            LanguageServerRequestError: transport failure, non-2xx status or
                a body that is not a GetUserStatus response.
        """
        url = self.build_url(port)
        logger.info(
            "get_user_status_request",
            url=url,
            port=port,
            api_key=mask_secret(api_key),
            csrf_token=mask_secret(csrf_token),
        )

        try:
            async with httpx.AsyncClient(verify=False, timeout=self.config.rpc_timeout_seconds) as client:
                response = await client.post(url, json=self.build_body(api_key), headers=self.build_headers(csrf_token))
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("get_user_status_http_error", status=exc.response.status_code)
            raise LanguageServerRequestError(
                f"language server answered HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            )
        except httpx.HTTPError as exc:
            logger.error("get_user_status_transport_error", error=str(exc))
            raise LanguageServerRequestError(f"request to language server failed: {exc}")

        try:
            parsed = UserStatusResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error("get_user_status_parse_error", error=str(exc))
            raise LanguageServerRequestError(f"unexpected GetUserStatus response: {exc}")

        logger.info("get_user_status_ok", port=port, has_user_status=parsed.user_status is not None)
        return parsed


async def fetch_user_status(
    api_key: str,
    config: ProbeConfig | None = None,
    discovery: LanguageServerDiscovery | None = None,
    client: LanguageServerClient | None = None,
) -> UserStatusResponse:
    """Discover port and token off the event loop, then call GetUserStatus."""
    if not api_key or not api_key.strip():
        raise ValueError("api_key must not be empty")

    config = config or get_config()
    discovery = discovery or LanguageServerDiscovery(config)
    client = client or LanguageServerClient(config)

    result = await discovery.discover_async()
    return await client.get_user_status(api_key, result.port, result.token.value)
