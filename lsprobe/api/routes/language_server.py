"""Language server routes: port lookup and GetUserStatus passthrough."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from ...dependencies import get_discovery, get_language_server_client
from ...discovery.orchestrator import LanguageServerDiscovery
from ...rpc.client import LanguageServerClient, fetch_user_status
from ...rpc.schemas import PortsResponse, UserStatusRequest

router = APIRouter(prefix="/language-server", tags=["language-server"])


@router.get("/ports", response_model=PortsResponse)
async def get_ports(discovery: LanguageServerDiscovery = Depends(get_discovery)):
    """Ports announced in the newest language server log (no memory scan)."""
    log_path = await _run_blocking(discovery.locate_log)
    ports = await _run_blocking(discovery.read_ports, log_path)
    return PortsResponse(log_path=str(log_path), **ports.to_dict())


@router.post("/user-status")
async def get_user_status(
    body: UserStatusRequest,
    discovery: LanguageServerDiscovery = Depends(get_discovery),
    client: LanguageServerClient = Depends(get_language_server_client),
):
    """Discover port and CSRF token, then forward GetUserStatus."""
    if not body.api_key.strip():
        raise HTTPException(status_code=400, detail="api_key must not be empty")
    result = await fetch_user_status(body.api_key, discovery=discovery, client=client)
    return result.model_dump(by_alias=True)


async def _run_blocking(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)
